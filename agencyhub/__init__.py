"""
Agency Hub backend
"""
