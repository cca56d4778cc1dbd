"""Appointment domain - creation guarded by the leave conflict check"""
