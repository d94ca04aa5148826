"""Selection and coordination core."""
