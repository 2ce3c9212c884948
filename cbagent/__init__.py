"""
Bootstrap agent for Couchbase cluster nodes coordinated through etcd.
"""

__version__ = "0.1.0"
