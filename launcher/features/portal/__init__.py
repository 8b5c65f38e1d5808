"""
Public portal pages: catalog, embedded viewer, failure pages.
"""
