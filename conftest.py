"""Test configuration for ensuring package imports."""

import os
import sys

# Put the repository root on ``sys.path`` so ``role_tracker`` imports without
# an editable install, the same as running ``python -m pytest`` from the root.
ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)
