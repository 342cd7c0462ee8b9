"""
Main entry point for the Cloudflare DNS Operator
"""

import argparse
import logging
import sys
import threading

import kopf

from cloudflare_dns_operator.cloudflare.client import CloudflareClient
from cloudflare_dns_operator.config.crd import render_crd
from cloudflare_dns_operator.config.settings import OperatorConfig
from cloudflare_dns_operator.dns_check import DnsPropagationChecker
from cloudflare_dns_operator.kubernetes.resources import KubernetesResources
from cloudflare_dns_operator.reconcile import FINALIZER, OperatorContext
from cloudflare_dns_operator.state import DnsMatchState

logger = logging.getLogger(__name__)


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def create_context(config: OperatorConfig, kube=None) -> OperatorContext:
    kube = kube or KubernetesResources.connect(config.namespace)
    match_state = DnsMatchState()
    checker = DnsPropagationChecker(
        kube,
        match_state,
        emit=kube.request_reconcile,
        interval=config.dns_check_interval,
        nameserver=config.nameserver,
    )
    return OperatorContext(
        kube=kube,
        provider=CloudflareClient(config.cloudflare_api_token),
        match_state=match_state,
        checker=checker,
    )


@kopf.on.startup()
def configure_operator(settings: kopf.OperatorSettings, memo: kopf.Memo, **_):
    """Configure operator for production use"""

    settings.persistence.finalizer = FINALIZER

    # Watching configuration
    settings.watching.server_timeout = 60
    settings.watching.client_timeout = 120

    # Posting configuration
    settings.posting.enabled = True
    settings.posting.level = logging.INFO

    # Execution configuration
    settings.execution.max_workers = 10

    memo.context = create_context(memo.config)
    if memo.config.dns_check_enabled:
        memo.dns_check_stopped = threading.Event()
        memo.dns_check_thread = threading.Thread(
            target=memo.context.checker.run,
            args=(memo.dns_check_stopped,),
            name="dns-check",
            daemon=True,
        )
        memo.dns_check_thread.start()
    else:
        logger.info("DNS checks disabled")

    logger.info("Cloudflare DNS Operator configured successfully")


@kopf.on.login()
def login(**kwargs):
    """Handle authentication"""
    return kopf.login_via_client(**kwargs)


@kopf.on.cleanup()
def stop_dns_check(memo: kopf.Memo, **_):
    stopped = getattr(memo, "dns_check_stopped", None)
    if stopped is None:
        return
    stopped.set()
    memo.dns_check_thread.join(timeout=5)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="cloudflare-dns-operator",
        description="Kubernetes operator to manage Cloudflare DNS records",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("crds", help="Print the CloudflareDNSRecord CRD as YAML")

    for command, help_text in (
        ("controller", "Run the controller"),
        ("list-zones", "List the zones visible to the API token"),
    ):
        sub = commands.add_parser(command, help=help_text)
        sub.add_argument(
            "--cloudflare-api-token",
            help="Cloudflare API token (env CLOUDFLARE_API_TOKEN)",
        )
        sub.add_argument(
            "--dns-check",
            dest="dns_check_interval",
            help="Interval of active DNS checks, e.g. 5m; disabled if not set "
            "(env CHECK_DNS_RESOLUTION)",
        )
        sub.add_argument(
            "--nameserver",
            help="Resolver used by DNS checks (env NAMESERVER_FOR_DNS_CHECK, default 1.1.1.1:53)",
        )
        sub.add_argument("--namespace", help="Only watch this namespace (env OPERATOR_NAMESPACE)")
        sub.add_argument("--log-level", help="Log level (env LOG_LEVEL, default INFO)")

    return parser


def run_controller(config: OperatorConfig):
    # Handlers register themselves with kopf on import
    from cloudflare_dns_operator.handlers import records, services  # noqa: F401

    logger.info("Starting controller")
    kopf.run(
        standalone=True,
        clusterwide=config.namespace is None,
        namespaces=[config.namespace] if config.namespace else (),
        memo=kopf.Memo(config=config),
    )
    logger.info("Controller stopped")


def list_zones(config: OperatorConfig):
    for zone in CloudflareClient(config.cloudflare_api_token).list_zones():
        print(f"{zone.id}\t{zone.name}")


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    if args.command == "crds":
        sys.stdout.write(render_crd())
        return 0

    try:
        config = OperatorConfig.from_env(
            cloudflare_api_token=args.cloudflare_api_token,
            dns_check_interval=args.dns_check_interval,
            nameserver=args.nameserver,
            namespace=args.namespace,
            log_level=args.log_level,
        )
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    configure_logging(config.log_level)

    if args.command == "list-zones":
        list_zones(config)
    else:
        run_controller(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
