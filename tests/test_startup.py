"""
Tests for operations/startup.py.

Covers:
  - StartupItem.from_raw():  defaults, type checks, extra keys
  - parse / sort:            priority order, tie order, single-object JSON
  - StartupRegistry.list():  enumeration failures, BOM, malformed JSON
  - StartupRegistry.toggle(): lookup, sanitised arguments, not-found short-circuit
  - open_task_manager():     best-effort
"""

import json
import logging

import pytest

from conftest import ok
from pcbuddy.errors import (
    EnumerationFailedError,
    ExecutionFailedError,
    InvalidInputError,
    NotFoundError,
    ParseFailedError,
)
from pcbuddy.operations.startup import (
    StartupItem,
    StartupRegistry,
    parse_startup_items,
    sort_startup_items,
)

_ITEMS = [
    {"Name": "Foo", "RegistryName": "FooReg", "Source": "HKCU Run",
     "Command": "C:\\foo.exe", "Safety": "danger"},
    {"Name": "", "Command": "", "Safety": "safe"},
]


def _writes_json(settings, data, bom: bool = False):
    """Executor step that plays getStartupPrograms.ps1: write the JSON file, exit 0."""
    def step(request):
        text = data if isinstance(data, str) else json.dumps(data)
        settings.startup_json_path.write_text(("\ufeff" if bom else "") + text, encoding="utf-8")
        return ok()
    return step


# ── StartupItem.from_raw() ────────────────────────────────────────────────────

class TestFromRaw:
    def test_all_fields(self):
        item = StartupItem.from_raw(_ITEMS[0], 0)
        assert item.name == "Foo"
        assert item.registry_name == "FooReg"
        assert item.source == "HKCU Run"
        assert item.command == "C:\\foo.exe"
        assert item.safety == "danger"
        assert item.priority == 3

    def test_defaults(self):
        item = StartupItem.from_raw({}, 4)
        assert item.name == "Unnamed"
        assert item.command == "Unnamed.exe"
        assert item.registry_name == "Unnamed"
        assert item.source == ""
        assert item.safety == "safe"
        assert item.priority == 1
        assert item.original_index == 4

    def test_blank_command_derived_from_name(self):
        assert StartupItem.from_raw({"Name": "Teams", "Command": "   "}, 0).command == "Teams.exe"

    def test_null_fields_treated_as_absent(self):
        item = StartupItem.from_raw({"Name": None, "Source": None, "Safety": None}, 0)
        assert (item.name, item.source, item.safety) == ("Unnamed", "", "safe")

    def test_safety_normalised(self):
        assert StartupItem.from_raw({"Safety": " Caution "}, 0).priority == 2

    def test_unknown_safety_ranks_as_safe(self):
        item = StartupItem.from_raw({"Safety": "unknown"}, 0)
        assert item.safety == "unknown"
        assert item.priority == 1

    def test_extra_keys_preserved(self):
        item = StartupItem.from_raw({"Name": "A", "Publisher": "Contoso"}, 0)
        assert item.extra == {"Publisher": "Contoso"}
        assert item.to_dict()["Publisher"] == "Contoso"

    def test_non_object_rejected(self):
        with pytest.raises(ParseFailedError):
            StartupItem.from_raw("OneDrive", 0)

    def test_non_string_field_rejected(self):
        with pytest.raises(ParseFailedError, match="Name"):
            StartupItem.from_raw({"Name": 42}, 0)

    def test_to_dict_uses_script_field_names(self):
        d = StartupItem.from_raw(_ITEMS[0], 2).to_dict()
        assert d["Name"] == "Foo"
        assert d["RegistryName"] == "FooReg"
        assert d["priority"] == 3
        assert d["index"] == 2


# ── parse / sort ──────────────────────────────────────────────────────────────

class TestParseAndSort:
    def test_sorted_by_priority(self):
        items = sort_startup_items(parse_startup_items(_ITEMS))
        assert [i.name for i in items] == ["Unnamed", "Foo"]
        assert items[0].command == "Unnamed.exe"

    def test_ties_keep_enumeration_order(self):
        raw = [{"Name": n, "Safety": s} for n, s in
               [("a", "caution"), ("b", "safe"), ("c", "caution"), ("d", "safe")]]
        assert [i.name for i in sort_startup_items(parse_startup_items(raw))] == ["b", "d", "a", "c"]

    def test_single_object_is_one_item(self):
        items = parse_startup_items({"Name": "OneDrive"})
        assert [i.name for i in items] == ["OneDrive"]

    def test_empty_array(self):
        assert parse_startup_items([]) == []

    @pytest.mark.parametrize("data", ["text", 3, None])
    def test_non_array_rejected(self, data):
        with pytest.raises(ParseFailedError):
            parse_startup_items(data)


# ── StartupRegistry.list() ────────────────────────────────────────────────────

class TestList:
    @pytest.mark.asyncio
    async def test_lists_sorted_items(self, settings, make_executor):
        executor = make_executor(_writes_json(settings, _ITEMS))
        items = await StartupRegistry(executor).list()
        assert [(i.name, i.priority) for i in items] == [("Unnamed", 1), ("Foo", 3)]

    @pytest.mark.asyncio
    async def test_enumeration_runs_unprivileged(self, settings, make_executor):
        executor = make_executor(_writes_json(settings, []))
        await StartupRegistry(executor).list()
        (request,) = executor.requests
        assert request.elevate is False
        assert request.target.endswith("getStartupPrograms.ps1")

    @pytest.mark.asyncio
    async def test_bom_tolerated(self, settings, make_executor):
        executor = make_executor(_writes_json(settings, _ITEMS, bom=True))
        assert len(await StartupRegistry(executor).list()) == 2

    @pytest.mark.asyncio
    async def test_script_failure(self, make_executor):
        executor = make_executor(ExecutionFailedError("Access denied", returncode=1))
        with pytest.raises(EnumerationFailedError) as exc:
            await StartupRegistry(executor).list()
        assert exc.value.message == "PowerShell script failed: Access denied"
        assert exc.value.context == "Startup"

    @pytest.mark.asyncio
    async def test_malformed_json(self, settings, make_executor):
        executor = make_executor(_writes_json(settings, "[{not json"))
        with pytest.raises(ParseFailedError, match="Failed to parse JSON"):
            await StartupRegistry(executor).list()

    @pytest.mark.asyncio
    async def test_missing_json_file(self, make_executor):
        executor = make_executor(ok())
        with pytest.raises(ParseFailedError, match="Failed to read JSON"):
            await StartupRegistry(executor).list()

    @pytest.mark.asyncio
    async def test_stale_file_from_previous_run_not_reused(self, settings, make_executor):
        settings.startup_json_path.write_text(json.dumps(_ITEMS), encoding="utf-8")
        executor = make_executor(ok())  # exits 0 without writing
        with pytest.raises(ParseFailedError, match="Failed to read JSON"):
            await StartupRegistry(executor).list()

    @pytest.mark.asyncio
    async def test_toggle_ignores_stale_file(self, settings, make_executor):
        settings.startup_json_path.write_text(json.dumps(_ITEMS), encoding="utf-8")
        executor = make_executor(ok())
        with pytest.raises(ParseFailedError):
            await StartupRegistry(executor).toggle("Foo", enable=False)
        assert len(executor.requests) == 1

    @pytest.mark.asyncio
    async def test_uncleared_file_fails_before_script(self, settings, make_executor):
        settings.startup_json_path.mkdir()
        executor = make_executor()
        with pytest.raises(EnumerationFailedError, match="Could not clear"):
            await StartupRegistry(executor).list()
        assert executor.requests == []

    @pytest.mark.asyncio
    async def test_every_call_enumerates_again(self, settings, make_executor):
        executor = make_executor(
            _writes_json(settings, [{"Name": "A"}]),
            _writes_json(settings, [{"Name": "A"}, {"Name": "B"}]),
        )
        registry = StartupRegistry(executor)
        assert len(await registry.list()) == 1
        assert len(await registry.list()) == 2


# ── StartupRegistry.toggle() ──────────────────────────────────────────────────

class TestToggle:
    @pytest.mark.asyncio
    async def test_not_found_runs_no_toggle(self, settings, make_executor):
        executor = make_executor(_writes_json(settings, _ITEMS))
        with pytest.raises(NotFoundError) as exc:
            await StartupRegistry(executor).toggle("Nope", enable=False)
        assert exc.value.message == "Startup item 'Nope' not found"
        assert len(executor.requests) == 1
        assert executor.requests[0].elevate is False

    @pytest.mark.asyncio
    async def test_disable_by_case_insensitive_name(self, settings, make_executor):
        executor = make_executor(_writes_json(settings, _ITEMS), ok("Disabled FooReg\r\n"))
        result = await StartupRegistry(executor).toggle("foo", enable=False)
        assert result == "Disabled FooReg\r\n"

        toggle = executor.requests[1]
        assert toggle.elevate is True
        assert toggle.target.endswith("toggleStartup.ps1")
        assert toggle.arguments == ('-Name "FooReg"', '-Source "HKCU Run"', "-Enable 0")

    @pytest.mark.asyncio
    async def test_enable_flag(self, settings, make_executor):
        executor = make_executor(_writes_json(settings, _ITEMS), ok())
        await StartupRegistry(executor).toggle("Foo", enable=True)
        assert executor.requests[1].arguments[-1] == "-Enable 1"

    @pytest.mark.asyncio
    async def test_arguments_sanitised(self, settings, make_executor):
        hostile = [{"Name": "Evil", "RegistryName": "Evil; Remove-Item C:\\",
                    "Source": "HKCU Run & calc"}]
        executor = make_executor(_writes_json(settings, hostile), ok())
        await StartupRegistry(executor).toggle("Evil", enable=False)
        name_arg, source_arg, _ = executor.requests[1].arguments
        assert ";" not in name_arg
        assert "&" not in source_arg

    @pytest.mark.asyncio
    async def test_toggle_failure_propagates(self, settings, make_executor):
        executor = make_executor(
            _writes_json(settings, _ITEMS),
            ExecutionFailedError("User did not grant permission.", elevation_denied=True),
        )
        with pytest.raises(ExecutionFailedError) as exc:
            await StartupRegistry(executor).toggle("Foo", enable=True)
        assert exc.value.elevation_denied is True


# ── open_task_manager() ───────────────────────────────────────────────────────

class TestTaskManager:
    @pytest.mark.asyncio
    async def test_opens(self, make_executor):
        executor = make_executor(ok())
        assert await StartupRegistry(executor).open_task_manager() is True
        assert "taskmgr.exe" in executor.commands[0]
        assert executor.requests[0].elevate is False

    @pytest.mark.asyncio
    async def test_failure_logged_not_raised(self, make_executor, caplog):
        executor = make_executor(ExecutionFailedError("not found", returncode=1))
        registry = StartupRegistry(executor, logger=logging.getLogger("pcbuddy.tests.startup"))
        with caplog.at_level(logging.WARNING, logger="pcbuddy.tests.startup"):
            assert await registry.open_task_manager() is False
        assert "Failed to open Task Manager" in caplog.text


class TestToggleInput:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "x" * 256])
    async def test_bad_name_rejected_before_enumeration(self, make_executor, name):
        executor = make_executor()
        with pytest.raises(InvalidInputError):
            await StartupRegistry(executor).toggle(name, enable=True)
        assert executor.requests == []
