"""
Pod Inspector - Kubernetes Stale Pod Detector and Remediator

A Python application that samples pod CPU or memory usage, flags pods whose
usage has stopped growing, and deletes them so their controller recreates them.
"""

__version__ = "1.0.0"
__author__ = "Pod Inspector Team"
