"""Pure domain rules (identity validation, progression) with no I/O."""
