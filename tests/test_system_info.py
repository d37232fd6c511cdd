"""
Tests for pcbuddy.system_info.
"""

from unittest.mock import patch

import pytest

from pcbuddy import system_info
from pcbuddy.system_info import format_ram, format_uptime, get_system_info

_KEYS = {"os_type", "os_platform", "os_release", "arch", "cpu", "ram", "hostname", "uptime"}


class TestFormatters:
    @pytest.mark.parametrize("seconds,expected", [
        (0, "0h 0m"),
        (59, "0h 0m"),
        (3600, "1h 0m"),
        (18720, "5h 12m"),
        (90061, "25h 1m"),
        (-5, "0h 0m"),
    ])
    def test_format_uptime(self, seconds, expected):
        assert format_uptime(seconds) == expected

    def test_format_ram(self):
        assert format_ram(16 * 1024 ** 3) == "16.00 GB"
        assert format_ram(0) == "0.00 GB"


class TestGetSystemInfo:
    def test_all_keys_present(self):
        assert set(get_system_info()) == _KEYS

    def test_values_are_strings(self):
        assert all(isinstance(v, str) for v in get_system_info().values())

    def test_cached(self):
        assert get_system_info() is get_system_info()

    def test_windows_probes_use_powershell(self):
        answers = {
            "Name": "Test CPU",
            "TotalPhysicalMemory": str(8 * 1024 ** 3),
            "LastBootUpTime": "7260",
        }

        def fake_powershell(expression):
            return next(v for k, v in answers.items() if k in expression)

        with patch.object(system_info, "IS_WINDOWS", True), \
             patch.object(system_info, "_powershell", side_effect=fake_powershell), \
             patch("platform.system", return_value="Windows"), \
             patch("platform.version", return_value="10.0.22631"), \
             patch("platform.machine", return_value="AMD64"):
            info = get_system_info()

        assert info["os_type"] == "Windows_NT"
        assert info["os_platform"] == "win32"
        assert info["os_release"] == "10.0.22631"
        assert info["arch"] == "x64"
        assert info["cpu"] == "Test CPU"
        assert info["ram"] == "8.00 GB"
        assert info["uptime"] == "2h 1m"

    def test_probe_failures_degrade(self):
        with patch.object(system_info, "IS_WINDOWS", True), \
             patch.object(system_info, "_powershell", return_value=""), \
             patch("platform.processor", return_value=""):
            info = get_system_info()
        assert info["cpu"] == "Unknown CPU"
        assert info["ram"] == "0.00 GB"
        assert info["uptime"] == "0h 0m"


class TestRun:
    def test_missing_binary_returns_empty(self):
        assert system_info._run(["definitely-not-a-real-binary-xyz"]) == ""
