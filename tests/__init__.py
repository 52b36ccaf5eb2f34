"""
Test package for NoteSync.

This package contains unit tests and git-backed integration tests for the
synchronization engine, its progress reporting, settings and CLI.
"""

import sys
from pathlib import Path

# Add src directory to path so tests can import notesync modules
test_dir = Path(__file__).parent
src_dir = test_dir.parent / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))
