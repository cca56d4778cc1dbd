"""
Clinic schedule domain.

Schedules, room shifts (dated or weekly), day overrides, and the resolver
that turns them into the effective assignment of a room on a date.
"""
