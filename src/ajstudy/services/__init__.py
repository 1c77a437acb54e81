"""Services implementing the study engine."""
