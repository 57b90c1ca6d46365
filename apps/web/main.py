"""FastAPI web application for pubpin."""

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from pubpin.exceptions import PubpinError
from pubpin.graph import DependencyGraph
from pubpin.parse_manifest import parse_manifest_text
from pubpin.pins import MANUALLY_PINNED_DEPENDENCIES, PinnedOverrides
from pubpin.rewrite import apply, manifest_checksum, unpin

app = FastAPI(
    title="pubpin",
    description="Pin pubspec.yaml dependencies to resolved versions",
    version="0.1.0",
)


class ManifestRequest(BaseModel):
    """Request carrying a single pubspec.yaml."""
    content: str


class PinRequest(ManifestRequest):
    """Request model for pinning a manifest."""
    resolver_output: str
    excluded_roots: list[str] = Field(default_factory=list)
    pins: dict[str, str] | None = None


class PinResponse(BaseModel):
    """Response model for a pinned manifest."""
    name: str
    original_content: str
    updated_content: str
    checksum: str
    has_changes: bool
    excluded: list[str]
    transitive: list[str]


class UnpinResponse(BaseModel):
    name: str
    updated_content: str


class VerifyResponse(BaseModel):
    name: str
    stored_checksum: str | None
    computed_checksum: str
    current: bool


def _require_content(content: str) -> str:
    if not content.strip():
        raise HTTPException(status_code=400, detail="No content provided")
    return content


@app.get("/")
async def home():
    """Describe the service."""
    return {
        "name": app.title,
        "version": app.version,
        "endpoints": ["/api/pin", "/api/unpin", "/api/verify"],
    }


@app.post("/api/pin", response_model=PinResponse)
async def pin_dependencies(request: PinRequest):
    """Pin a manifest against resolver output."""
    content = _require_content(request.content)
    try:
        manifest = parse_manifest_text(content)
        graph = DependencyGraph.from_output(request.resolver_output)
        pins = PinnedOverrides(MANUALLY_PINNED_DEPENDENCIES if request.pins is None else request.pins)
        result = apply(manifest, graph, set(request.excluded_roots), pins)
    except PubpinError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return PinResponse(
        name=manifest.name,
        original_content=content,
        updated_content=result.text,
        checksum=result.checksum,
        has_changes=result.changed,
        excluded=sorted(result.excluded),
        transitive=list(result.transitive),
    )


@app.post("/api/unpin", response_model=UnpinResponse)
async def unpin_dependencies(request: ManifestRequest):
    """Relax every hosted dependency of a manifest to "any"."""
    content = _require_content(request.content)
    try:
        manifest = parse_manifest_text(content)
    except PubpinError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return UnpinResponse(name=manifest.name, updated_content=unpin(manifest))


@app.post("/api/verify", response_model=VerifyResponse)
async def verify_checksum(request: ManifestRequest):
    """Compare a manifest's stored checksum with its dependency lines."""
    content = _require_content(request.content)
    try:
        manifest = parse_manifest_text(content)
    except PubpinError as e:
        raise HTTPException(status_code=422, detail=str(e))

    computed = manifest_checksum(manifest)
    return VerifyResponse(
        name=manifest.name,
        stored_checksum=manifest.checksum,
        computed_checksum=computed,
        current=manifest.checksum == computed,
    )
