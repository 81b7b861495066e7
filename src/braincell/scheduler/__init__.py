"""
Timed work for Braincell.

- **rotation_scheduler.py**: One recurring rotation task per guild. Rescheduling
  cancels the previous task first, so a guild never has two timers.
"""
