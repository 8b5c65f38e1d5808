"""
Data models: application registry and admin user.
"""
