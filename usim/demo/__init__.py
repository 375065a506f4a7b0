"""Bundled demo screens (``usim serve --demo``)."""
