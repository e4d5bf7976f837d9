"""
Gateway package for the device control panel.

This package provides a FastAPI application that forwards browser requests
to a Firebase Realtime Database REST endpoint and applies read-modify-write
updates (field merges, SMS credit adjustments) to device records.
"""
