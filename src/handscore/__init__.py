"""Handwriting scoring against the Shuyao Hengshui print standard."""
