"""CloudOps Cost Optimizer.

Derives cost-saving recommendations from cloud resource inventories, carries
them out through the monitoring service, verifies them against fresh
inventory, and tracks the savings they produce.
"""

__version__ = "0.1.0"
__author__ = "CloudOps Team"
