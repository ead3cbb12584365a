"""Network engine: activations, neurons, the MLP and its stored parameters."""
