"""movsim.cpu — register map, instruction decoder, derived registers, undo history."""
