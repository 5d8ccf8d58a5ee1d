"""movsim.mem — 100-cell memory model."""
