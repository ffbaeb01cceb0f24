from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import Field

from ..dispatch.outcome import Failure, Outcome, Success, external_error, not_found
from ..dispatch.registry import ToolSpec
from ..dispatch.validation import ToolArgs


class PackageArgs(ToolArgs):
    packageName: str = Field(min_length=1, description="npm package name")


class ReleaseHistoryArgs(ToolArgs):
    packageName: str = Field(min_length=1, description="npm package name")
    limit: int = Field(default=5, ge=1, le=100, description="Number of releases to return")


class RegistryApi(Protocol):
    async def get_packument(self, name: str) -> dict[str, Any]: ...


_NO_DESCRIPTION = "No description available"
# Keys in the packument `time` map that are not versions.
_TIME_META_KEYS = ("created", "modified")


def _parse_time(raw: Any) -> datetime:
    try:
        dt = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _latest(doc: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
    tags = doc.get("dist-tags")
    version = tags.get("latest") if isinstance(tags, dict) else None
    versions = doc.get("versions")
    manifest = versions.get(version) if isinstance(versions, dict) and version else None
    return version, manifest if isinstance(manifest, dict) else {}


class NpmTools:
    def __init__(self, registry: RegistryApi):
        self.registry = registry

    async def _packument(self, name: str) -> dict[str, Any] | Failure:
        res = await self.registry.get_packument(name)
        if res.get("ok"):
            return res["data"]
        if res.get("status") == 404:
            return not_found(f"Package not found: {name}")
        return external_error(str(res.get("error") or "request_failed"))

    async def get_package_info(self, args: PackageArgs) -> Outcome:
        doc = await self._packument(args.packageName)
        if isinstance(doc, Failure):
            return doc
        version, latest = _latest(doc)
        return Success(
            {
                "name": doc.get("name"),
                "version": version,
                "description": latest.get("description"),
                "author": latest.get("author"),
                "homepage": latest.get("homepage"),
                "repository": latest.get("repository"),
                "dependencies": latest.get("dependencies"),
                "devDependencies": latest.get("devDependencies"),
            }
        )

    async def get_release_history(self, args: ReleaseHistoryArgs) -> Outcome:
        doc = await self._packument(args.packageName)
        if isinstance(doc, Failure):
            return doc
        raw_times = doc.get("time")
        times = raw_times if isinstance(raw_times, dict) else {}
        raw_versions = doc.get("versions")
        versions = raw_versions if isinstance(raw_versions, dict) else {}

        releases = [(v, t) for v, t in times.items() if v not in _TIME_META_KEYS]
        releases.sort(key=lambda vt: _parse_time(vt[1]), reverse=True)

        history: list[dict[str, Any]] = []
        for version, published in releases[: args.limit]:
            manifest = versions.get(version)
            desc = manifest.get("description") if isinstance(manifest, dict) else None
            history.append({"version": version, "date": published, "changes": desc or _NO_DESCRIPTION})
        return Success(history)

    async def analyze_dependencies(self, args: PackageArgs) -> Outcome:
        doc = await self._packument(args.packageName)
        if isinstance(doc, Failure):
            return doc
        _, latest = _latest(doc)

        def _deps(key: str) -> dict[str, Any]:
            v = latest.get(key)
            return dict(v) if isinstance(v, dict) else {}

        deps, dev, peer = _deps("dependencies"), _deps("devDependencies"), _deps("peerDependencies")
        return Success(
            {
                "dependencies": len(deps),
                "devDependencies": len(dev),
                "peerDependencies": len(peer),
                "details": {
                    "dependencies": deps,
                    "devDependencies": dev,
                    "peerDependencies": peer,
                },
            }
        )

    def specs(self) -> list[ToolSpec]:
        return [
            ToolSpec(
                name="get_package_info",
                description="Get the latest published information for an npm package",
                args_model=PackageArgs,
                execute=self.get_package_info,
            ),
            ToolSpec(
                name="get_release_history",
                description="Get the release history of an npm package, newest first",
                args_model=ReleaseHistoryArgs,
                execute=self.get_release_history,
            ),
            ToolSpec(
                name="analyze_dependencies",
                description="Analyze the dependencies of the latest version of an npm package",
                args_model=PackageArgs,
                execute=self.analyze_dependencies,
            ),
        ]
