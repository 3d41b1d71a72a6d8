"""Organizations and their staff"""
