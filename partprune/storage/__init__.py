"""
Storage layer for partprune.

Retention models, catalog access, the partition-drop executor and the runners
that drive it.
"""
