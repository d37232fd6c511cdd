"""
Maintenance operations built on the execution layer.

Modules:
  parsing.py — output scraping: sfc marker, reg query values, BOM-tolerant JSON.
  repair.py  — RepairWorkflow: sfc scan, DISM only when sfc could not fix.
  cleanup.py — DiskCleanup.
  startup.py — StartupRegistry: list, toggle, open Task Manager.
  backup.py  — BackupPathResolver and BackupService.
"""
