"""
Test suite for the XP badge system
"""
