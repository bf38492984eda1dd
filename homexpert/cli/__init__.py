"""HomeXpert command-line interface."""
