"""Sound subsystem - microphone capture and detection tone."""
