"""
HEVC Shrinker: batch conversion of a video tree to HEVC/AAC in MKV, keeping
whichever of the original and the re-encode is smaller.

The run entry point is the root `main.py`; the ledger listing is
`list_processed_main.py`.
"""

__version__ = "1.0.0"
