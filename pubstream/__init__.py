"""pubstream - simulated pub/sub event stream backed by a relational store."""
