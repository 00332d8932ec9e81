"""Application layer: ports and use cases of the shipping core."""
