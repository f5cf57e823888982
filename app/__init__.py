"""
PirateVoice application package.
"""
