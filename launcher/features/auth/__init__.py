"""
Session authentication: Flask-Login backed sign-in and the gateway's auth signal.
"""
