"""
TodoGraph - todo list service with dependency graphs and critical path analysis.
"""

__version__ = "0.1.0"
