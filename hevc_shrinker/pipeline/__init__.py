"""
This package contains the processing pipeline for HEVC Shrinker.

The pipeline runs the startup checks, discovers files, and drives each file
through the decision engine and the safe replacement protocol one at a time,
collecting a summary of the outcomes.
"""
