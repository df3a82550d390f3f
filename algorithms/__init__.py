"""
Algorithms package for the Wait-For Graph Deadlock Detector.
Contains wait-for graph construction, cycle detection, strict validation and
resolution helpers.
"""
