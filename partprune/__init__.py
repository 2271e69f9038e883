"""
partprune - Partition retention enforcement for QuestDB.

This package contains the retention-policy domain model, the cutoff
calculation, and the batch and interactive runners that drop expired
partitions from time-partitioned tables.
"""

__version__ = "0.1.0"
__author__ = "partprune maintainers"
