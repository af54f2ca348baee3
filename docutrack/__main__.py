"""Allow running DocuTrack with ``python -m docutrack``."""

import sys

from docutrack.cli import main

sys.exit(main())
