"""
Replacement dataset upload.
"""
