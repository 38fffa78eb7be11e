"""
Ad template module.
"""
