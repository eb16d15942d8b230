import sys
from pathlib import Path

# Run against the checkout without installing; 'tests' holds the fixtures module
HERE = Path(__file__).resolve().parent
for path in (HERE.parent / "src", HERE):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))
