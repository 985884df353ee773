"""
College Scorecard Search-Interest Analysis

Tests whether the September 2015 College Scorecard release shifted Google
search interest toward colleges whose graduates report high earnings.
"""

__version__ = "0.1.0"
