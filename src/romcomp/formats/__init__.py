"""ROM format recognition.

This module contains the capability bit-set, cue sheet reading, the
classifier that maps a file to its capabilities, and the table of external
tools and output names each capability converts with.
"""
