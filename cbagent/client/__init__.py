# client/__init__.py
from .etcd import CoordinationError, EtcdClient, EtcdNode, KeyAlreadyExists
from .rest import ClusterRestClient, RestDecodeError, RestError, RestStatusError

__all__ = [
    'ClusterRestClient', 'CoordinationError', 'EtcdClient', 'EtcdNode',
    'KeyAlreadyExists', 'RestDecodeError', 'RestError', 'RestStatusError',
]
