"""Core — engine, models, detection and the services around them."""
