"""Command-line interface for inspecting and generating PCM WAV files."""
