"""Model construction, prompting and the bounded generation loop."""
