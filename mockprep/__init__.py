"""
MockPrep: AI-assisted interview practice.
"""
__version__ = "0.1.0"
