#!/usr/bin/env python3
"""
Command line entry point for the Couchbase bootstrap agent.
"""

import argparse
import logging
import sys

from . import config
from .client.etcd import EtcdClient
from .client.rest import ClusterRestClient
from .cluster.health import ClusterHealth
from .cluster.membership import MembershipCoordinator
from .cluster.node import NodeBootstrap
from .cluster.watch import ClusterWatcher
from .config import NodeConfig
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_WATCH_ATTEMPTS = 10000


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Couchbase cluster bootstrap agent')
    parser.add_argument('--etcd-servers', default=None,
                        help='Comma separated etcd servers (default: $CBAGENT_ETCD_SERVERS or localhost)')
    parser.add_argument('--log-level', default=config.LOG_LEVEL, help='Logging level')

    commands = parser.add_subparsers(dest='command', required=True)

    start = commands.add_parser('start-node', help='Start, then join or initialize, the local node')
    start.add_argument('--local-ip', required=True, help='Address of the local Couchbase node')
    start.add_argument('--userpass', default=None,
                       help='Admin user:pass (default: read from the coordination store)')
    start.add_argument('--heartbeat-ttl', type=int, default=config.HEARTBEAT_TTL,
                       help='TTL in seconds for membership entries')

    running = commands.add_parser('wait-until-running', help='Wait until all cluster nodes are healthy')
    running.add_argument('--max-attempts', type=int, default=DEFAULT_WATCH_ATTEMPTS)

    num_nodes = commands.add_parser('wait-until-num-nodes',
                                    help='Wait until at least N cluster nodes are healthy')
    num_nodes.add_argument('--num-nodes', type=int, required=True)
    num_nodes.add_argument('--max-attempts', type=int, default=DEFAULT_WATCH_ATTEMPTS)

    return parser


def start_node(args, etcd: EtcdClient):
    node_config = NodeConfig(ip=args.local_ip)
    if args.userpass:
        node_config.set_userpass(args.userpass)

    node = NodeBootstrap(node_config, etcd, heartbeat_ttl=args.heartbeat_ttl)
    try:
        node.start()
    finally:
        node.close()


def wait_for_cluster(args, etcd: EtcdClient):
    node_config = NodeConfig(ip="")
    membership = MembershipCoordinator(etcd, node_config)
    membership.load_admin_credentials()

    rest = ClusterRestClient(node_config)
    try:
        watcher = ClusterWatcher(membership, ClusterHealth(rest, node_config))
        if args.command == 'wait-until-num-nodes':
            watcher.wait_until_num_nodes_running(args.num_nodes, args.max_attempts)
        else:
            watcher.wait_until_cluster_running(args.max_attempts)
    finally:
        rest.close()
    logger.info("Cluster is running")


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging("cbagent", args.log_level)

    servers = config.split_server_list(args.etcd_servers) or config.ETCD_SERVERS
    etcd = EtcdClient(servers)

    try:
        if args.command == 'start-node':
            start_node(args, etcd)
        else:
            wait_for_cluster(args, etcd)
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return 1
    finally:
        etcd.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
