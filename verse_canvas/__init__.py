"""
Verse Canvas: fetch Bible verses and render them as auto-fitted images.
"""
