"""Clinic domains: schedules, leave and appointments"""
