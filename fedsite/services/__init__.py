"""Domain services for the microsite builder."""
