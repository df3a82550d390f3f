"""
Models package for the Wait-For Graph Deadlock Detector.
Contains entity, resource, lock-record, snapshot and result types.
"""
