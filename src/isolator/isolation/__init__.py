"""
Package isolation: carve one package out of a JavaScript workspace into a
self-contained, deployable ``deploy.zip``.

Architecture::

    ┌────────────────────┐
    │  IsolationRunner   │
    │                    │
    │  locate()      ────┼──► workspace root (lockfile marker)
    │  resolve()     ────┼──► entry files (glob, node_modules excluded)
    │  tracer.trace()────┼──► closure (paths relative to root)
    │  materialize() ────┼──► staging root mirroring the workspace
    │  archiver      ────┼──► staging/deploy.zip
    │  publish()     ────┼──► caller's output path
    └────────────────────┘

Usage::

    from isolator.isolation import IsolateConfig, isolate

    config = IsolateConfig(input=Path("packages/web"), output=Path("web.zip"))
    result = isolate(config)
    print(result.published_to)

Tags:
    isolation, monorepo, workspace, packaging, zip, deployment
"""

from isolator.isolation.archiver import Archiver, ZipCommandArchiver, ZipfileArchiver
from isolator.isolation.config import IsolateConfig
from isolator.isolation.entries import resolve
from isolator.isolation.locator import locate
from isolator.isolation.materializer import materialize
from isolator.isolation.pipeline import IsolationRunner, isolate
from isolator.isolation.projector import project
from isolator.isolation.publisher import publish
from isolator.isolation.results import ArchiveStatus, IsolationResult
from isolator.isolation.tracing import ClosureTracer, ImportScanTracer, NodeFileTracer

__all__ = [
    "Archiver",
    "ArchiveStatus",
    "ClosureTracer",
    "ImportScanTracer",
    "IsolateConfig",
    "IsolationResult",
    "IsolationRunner",
    "NodeFileTracer",
    "ZipCommandArchiver",
    "ZipfileArchiver",
    "isolate",
    "locate",
    "materialize",
    "project",
    "publish",
    "resolve",
]
