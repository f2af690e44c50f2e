"""
Bearer-token and basic-auth guards.
"""
