"""Conversion orchestration.

This module contains the per-file conversion job, the file planner and
cleanup it relies on, the directory flattener, and the scheduler that runs
jobs concurrently and collects their totals.
"""
