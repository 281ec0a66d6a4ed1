"""
MOODFIT Analytics Service

Session quality analysis for recorded exercise and yoga sessions.
"""
