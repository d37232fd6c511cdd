"""Terminal rendering for PC Buddy (rich)."""
