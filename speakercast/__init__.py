"""SpeakerCast: audio ingestion, delivery and speaker playback control."""

__version__ = "1.0.0"
