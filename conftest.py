"""pytest conftest.py: put src/ on sys.path so onewire_logger imports without install."""
import sys
from pathlib import Path

_src = str(Path(__file__).parent / "src")
if _src not in sys.path:
    sys.path.insert(0, _src)
