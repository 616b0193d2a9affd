"""Direct messaging between users with real-time event fan-out."""
