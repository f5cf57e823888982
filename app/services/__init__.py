"""
Voice generation services.
"""
