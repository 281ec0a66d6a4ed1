"""
MOODFIT Core

Application configuration.
"""
