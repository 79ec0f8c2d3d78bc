"""
Slop Meter - Estimate how likely a GitHub repository is AI-generated.

Combines commit history, AI tooling files, comment style, repetition and
layout uniformity into a 0-100 likelihood with a confidence band.
"""

__version__ = "0.1.0"
