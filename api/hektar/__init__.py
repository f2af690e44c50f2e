"""
Hectare sponsorship: match raster ids in a feature collection and stamp them.
"""
