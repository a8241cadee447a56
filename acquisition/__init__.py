"""
NovelWeaver - Chapter Acquisition
Turns a novel name into a chapter manifest, fetches chapter text, and
compiles downloaded ranges into one document.

Architecture:
    manifest.py - Builds the chapter manifest from the oracle's novel metadata
    loader.py   - Fetches one chapter and records the outcome on its record
    batch.py    - Sequential, paced, cancellable range downloads
    export.py   - Compiles completed chapters into a Markdown document
    ranges.py   - Fixed-size range blocks and their aggregate status
    session.py  - Owns the live manifest and coordinates the pieces above
"""
