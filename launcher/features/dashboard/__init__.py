"""
Administration dashboard: registry stats and app management API.
"""
