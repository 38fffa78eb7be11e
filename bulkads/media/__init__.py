"""
Media upload module.
"""
