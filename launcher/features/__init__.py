"""
Application features, one package per blueprint.
"""
