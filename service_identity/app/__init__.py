"""
Identity service application package.
"""
