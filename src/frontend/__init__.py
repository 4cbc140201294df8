"""Textual terminal UI for reviewing and annotating conversations."""
