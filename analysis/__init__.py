"""
Analysis package for the Wait-For Graph Deadlock Detector.
Contains the event log and report formatting.
"""
