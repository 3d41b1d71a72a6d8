"""Camps, schedules, schedule exceptions, staff assignments and document agreements"""
