"""procpulse: rolling CPU/memory monitor with ranked process view."""
