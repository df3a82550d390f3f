"""
Utilities for the Wait-For Graph Deadlock Detector.
Contains the logger and scenario loader.
"""
