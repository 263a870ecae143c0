from __future__ import annotations

import argparse
import json
import logging
import sys

import requests
import uvicorn

from . import db
from .api import create_app
from .events import EventStoreSink, LogSink, MultiSink, configure_logging
from .kube import CLIENT_MODES, ClientInitError, KubernetesDirectory, build_client
from .reconciler import Reconciler
from .runtime import RuntimeState
from .scheduler import Scheduler
from .settings import settings

logger = logging.getLogger("autorollback")


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _add_controller_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--client",
        choices=CLIENT_MODES,
        default=settings.client_mode,
        help="Strategy for initializing the Kubernetes client. Either uses 'in-cluster' "
        "or grabs current context with 'kubectl'.",
    )
    p.add_argument("--namespace", default=settings.namespace, help="Namespace to watch (default: client context)")
    p.add_argument("--interval", type=float, default=settings.poll_interval_s, help="Seconds between passes")


def build_scheduler(args: argparse.Namespace, runtime: RuntimeState) -> tuple[Scheduler, str]:
    kc = build_client(args.client)
    namespace = args.namespace or kc.namespace
    sink = MultiSink(LogSink(logger), EventStoreSink(runtime, namespace=namespace))
    reconciler = Reconciler(KubernetesDirectory(kc.apps), namespace, sink)
    return Scheduler(reconciler, sink, interval_s=args.interval), namespace


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Roll back Deployments that exceeded their progress deadline")
    p.add_argument("--log-level", default=settings.log_level)
    sub = p.add_subparsers(dest="cmd", required=True)

    s_run = sub.add_parser("run", help="Run the rollback controller in the foreground")
    _add_controller_args(s_run)

    s_serve = sub.add_parser("serve", help="Run the controller together with the status API")
    _add_controller_args(s_serve)
    s_serve.add_argument("--host", default=settings.api_host)
    s_serve.add_argument("--port", type=int, default=settings.api_port)

    s_ev = sub.add_parser("events", help="Show events from a running controller")
    s_ev.add_argument("--api", default="http://localhost:8000", help="API base URL")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)
    configure_logging(args.log_level)

    if args.cmd == "events":
        base = args.api.rstrip("/")
        r = requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    runtime = RuntimeState()
    try:
        scheduler, namespace = build_scheduler(args, runtime)
    except ClientInitError as e:
        logger.critical("%s", e)
        return 1

    if args.cmd == "run":
        db.init_db()
        logger.info("watching deployments in namespace %s every %.1fs", namespace, scheduler.interval_s)
        scheduler.run_forever()
        return 0

    if args.cmd == "serve":
        uvicorn.run(create_app(runtime, scheduler=scheduler, namespace=namespace), host=args.host, port=args.port)
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
