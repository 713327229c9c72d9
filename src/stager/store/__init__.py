"""
Backing storage for staged blobs.

- content_store.py: identifier -> temp file mapping with best-effort reclaim
- sweep.py: removal of backing files orphaned by crashed processes
"""
