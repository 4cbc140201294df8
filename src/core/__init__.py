"""Core domain package for spanscope.

Core contains span capture, the pending batch and the annotation session
without any UI, HTTP or SQLite-specific code, keeping the review logic portable.
"""
