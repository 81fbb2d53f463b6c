"""Core host, image and container logic for torchdock."""
