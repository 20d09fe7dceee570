"""Resumable image annotation for a WordPress media library.

Generation asks a local Ollama vision model for alt text, keywords, caption
and title per image and appends them to a CSV checkpoint; commit applies the
reviewed CSV to the site. The ``describe_images.py`` CLI drives both.
"""
