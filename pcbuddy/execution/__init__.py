"""
Privileged execution layer for PC Buddy.

Modules:
  validation.py — sanitize(), validate_path() and their combined form.
  commands.py   — ExecutionRequest and the PowerShell command builders.
  executor.py   — Executor (unprivileged / UAC-elevated spawn, timeout,
                  output ceiling) and the PrivilegeGate.
"""
