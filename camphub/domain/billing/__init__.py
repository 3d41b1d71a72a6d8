"""Subscription plans"""
