"""Athlete (child) profiles managed by parents"""
