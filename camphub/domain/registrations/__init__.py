"""Camp registrations and waitlist"""
