"""PCM streams, mixer controls and RIFF/WAVE files: parsing, settings, headers and analysis."""

__version__ = "0.1.0"

__all__ = [
    "capture",
    "mixer",
    "optparse",
    "pcm",
    "pcminfo",
    "playback",
    "tinymix",
    "version",
    "wav",
]