"""State/store layer.

Single source of truth for how capability patches from radio scans, cloud
polls and webhook pushes become a per-device snapshot, and for what the
host platform has actually been told.
"""
