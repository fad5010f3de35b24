"""CDN URL construction for cdn-image.

Composes delivery URLs from a public id, transformation options and the
delivery configuration: host selection, subdomain sharding, resource/type
segments, versioning and escaping.
"""

import re
import zlib
from typing import Any, Mapping
from urllib.parse import quote, unquote

from .config import get_default_config
from .models import Config, Environment, UrlResult
from .transformation import device_pixel_ratio, generate_transformation


SHARED_CDN = "res.cloudinary.com"
OLD_AKAMAI_SHARED_CDN = "cloudinary-a.akamaihd.net"
SUBDOMAIN_SHARDS = 5

ABSOLUTE_URL_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9+.\-]*://')
VERSION_PATTERN = re.compile(r'^v[0-9]+/')

# (resource_type, type) -> path prefix used when url_suffix is set
URL_SUFFIX_PREFIXES = {
    ("image", "upload"): "images",
    ("image", "private"): "private_images",
    ("image", "authenticated"): "authenticated_images",
    ("raw", "upload"): "files",
    ("video", "upload"): "videos",
}


class ValidationError(ValueError):
    """Raised for option combinations the CDN cannot serve."""
    pass


def is_absolute_url(value: str) -> bool:
    return bool(ABSOLUTE_URL_PATTERN.match(value))


def smart_escape(value: str) -> str:
    """Percent-escape everything except unreserved characters, '/' and ':'."""
    return quote(value, safe="/:")


def cdn_subdomain_number(public_id: str) -> int:
    """Stable shard number (1-5) for spreading requests over subdomains."""
    return zlib.crc32(public_id.encode("utf-8")) % SUBDOMAIN_SHARDS + 1


def finalize_source(public_id: str, format: str | None, url_suffix: str | None) -> str:
    """Escape the public id and attach url_suffix and format.

    Absolute URLs are escaped as a single unit so that their query strings
    survive as part of the path.

    Args:
        public_id: Public id or remote URL
        format: File extension to append, if any
        url_suffix: SEO suffix to append before the extension, if any

    Returns:
        Escaped source path
    """
    source = re.sub(r'([^:])/+', r'\1/', public_id)

    if is_absolute_url(source):
        return smart_escape(source)

    source = smart_escape(unquote(source))
    if url_suffix:
        source = f"{source}/{url_suffix}"
    if format:
        source = f"{source}.{format}"
    return source


def finalize_resource_type(
    resource_type: str,
    upload_type: str,
    url_suffix: str | None,
    use_root_path: bool,
    shorten: bool,
) -> tuple[str | None, str | None]:
    """Work out the resource/type path segments.

    Returns:
        Tuple of (resource segment, type segment); either may be None

    Raises:
        ValidationError: If url_suffix or use_root_path is used with an
            unsupported resource_type/type combination
    """
    resource_segment: str | None = resource_type
    type_segment: str | None = upload_type

    if url_suffix:
        prefix = URL_SUFFIX_PREFIXES.get((resource_type, upload_type))
        if prefix is None:
            supported = ", ".join(f"{r}/{t}" for r, t in URL_SUFFIX_PREFIXES)
            raise ValidationError(f"URL Suffix only supported for {supported}")
        resource_segment, type_segment = prefix, None

    if use_root_path:
        if (resource_segment, type_segment) in (("image", "upload"), ("images", None)):
            resource_segment = type_segment = None
        else:
            raise ValidationError("Root path only supported for image/upload")

    if shorten and (resource_segment, type_segment) == ("image", "upload"):
        resource_segment, type_segment = "iu", None

    return resource_segment, type_segment


def validate_url_suffix(url_suffix: str | None, config: Config) -> None:
    if not url_suffix:
        return
    if not config.private_cdn:
        raise ValidationError("URL Suffix only supported in private CDN")
    if "." in url_suffix or "/" in url_suffix:
        raise ValidationError("url_suffix should not include . or /")


def resolve_secure(config: Config, environment: Environment) -> bool:
    """An explicit secure setting wins; otherwise follow the page protocol."""
    if config.secure is not None:
        return bool(config.secure)
    return environment.page_protocol == "https:"


def resolve_scheme(config: Config, environment: Environment, secure: bool) -> str:
    if secure:
        return "https:"
    page_protocol = environment.page_protocol
    if page_protocol == "https:":
        # Insecure URLs were explicitly requested
        page_protocol = None
    scheme = config.protocol or page_protocol or "http:"
    if not scheme.endswith(":"):
        scheme += ":"
    return scheme


def url_prefix(public_id: str, config: Config, environment: Environment) -> str:
    """Build scheme, host and (for shared domains) the cloud_name segment.

    Args:
        public_id: Public id used to pick the subdomain shard
        config: Effective configuration for this call
        environment: Calling page details

    Returns:
        Prefix such as https://res.cloudinary.com/demo

    Raises:
        ValidationError: If cloud_name is needed but missing
    """
    cloud_name = config.cloud_name
    secure = resolve_secure(config, environment)
    scheme = resolve_scheme(config, environment, secure)
    shard = cdn_subdomain_number(public_id)
    shared_domain = not config.private_cdn
    # Private hosts are named after the cloud unless a custom host is set
    needs_cloud_name = True

    if secure:
        distribution = config.secure_distribution
        if not distribution or distribution == OLD_AKAMAI_SHARED_CDN:
            distribution = f"{cloud_name}-res.cloudinary.com" if config.private_cdn else SHARED_CDN
        else:
            shared_domain = distribution == SHARED_CDN
            needs_cloud_name = shared_domain

        secure_cdn_subdomain = config.secure_cdn_subdomain
        if secure_cdn_subdomain is None and shared_domain:
            secure_cdn_subdomain = config.cdn_subdomain
        if secure_cdn_subdomain:
            distribution = distribution.replace(SHARED_CDN, f"res-{shard}.cloudinary.com")

        prefix = f"{scheme}//{distribution}"
    elif config.cname:
        subdomain = f"a{shard}." if config.cdn_subdomain else ""
        prefix = f"{scheme}//{subdomain}{config.cname}"
        needs_cloud_name = shared_domain
    else:
        host = f"{cloud_name}-res" if config.private_cdn else "res"
        if config.cdn_subdomain:
            host = f"{host}-{shard}"
        prefix = f"{scheme}//{host}.cloudinary.com"

    if needs_cloud_name and not cloud_name:
        raise ValidationError("Must supply cloud_name in options or configuration")

    if shared_domain:
        prefix = f"{prefix}/{cloud_name}"
    return prefix


def build_url(
    public_id: str,
    options: Mapping[str, Any] | None = None,
    config: Config | None = None,
    environment: Environment | None = None,
) -> UrlResult:
    """Build the delivery URL for a public id.

    Per-call options whose names are Config fields (cloud_name, secure,
    private_cdn, ...) override the configuration; the rest describe the
    transformation. Unknown keys are ignored.

    Args:
        public_id: Public id of the asset, or a remote URL
        options: Per-call options
        config: Configuration to use (defaults to the process-wide default,
            read at call time)
        environment: Page protocol and device pixel ratio source

    Returns:
        UrlResult with the URL and img width/height hints

    Raises:
        ValidationError: For url_suffix / use_root_path misuse
    """
    options = dict(options or {})
    if config is None:
        config = get_default_config()
    if environment is None:
        environment = Environment()

    config = config.merged(options)
    for name in Config.field_names():
        options.pop(name, None)

    upload_type = options.pop("type", None)
    if is_absolute_url(public_id) and upload_type in (None, "asset"):
        return UrlResult(url=public_id)

    upload_type = upload_type or "upload"
    resource_type = options.pop("resource_type", None) or "image"
    version = options.pop("version", None)
    format = options.pop("format", None)
    url_suffix = options.pop("url_suffix", None)

    if upload_type == "fetch":
        if not options.get("fetch_format"):
            options["fetch_format"] = format
        format = None

    transformation = generate_transformation(
        options,
        lambda: device_pixel_ratio(environment.device_pixel_ratio, config.round_dpr),
    )

    validate_url_suffix(url_suffix, config)
    resource_segment, type_segment = finalize_resource_type(
        resource_type, upload_type, url_suffix, config.use_root_path, config.shorten
    )
    source = finalize_source(public_id, format, url_suffix)

    if (
        not version
        and "/" in public_id
        and not is_absolute_url(public_id)
        and not VERSION_PATTERN.match(public_id)
    ):
        version = 1
    version_segment = f"v{version}" if version else None

    parts = [
        url_prefix(public_id, config, environment),
        resource_segment,
        type_segment,
        transformation.path,
        version_segment,
        source,
    ]
    url = "/".join(part for part in parts if part)
    return UrlResult(url, transformation.html_width, transformation.html_height)


def sprite_css_url(
    public_id: str,
    options: Mapping[str, Any] | None = None,
    config: Config | None = None,
    environment: Environment | None = None,
) -> str:
    """URL of the CSS sheet for a sprite generated from a tag."""
    options = dict(options or {})
    options["type"] = "sprite"
    if not public_id.endswith(".css"):
        options["format"] = "css"
    return build_url(public_id, options, config, environment).url


def fetch_image_url(
    remote_url: str,
    options: Mapping[str, Any] | None = None,
    config: Config | None = None,
    environment: Environment | None = None,
) -> UrlResult:
    """Build a URL that makes the CDN fetch and deliver a remote image."""
    options = dict(options or {})
    options["type"] = "fetch"
    return build_url(remote_url, options, config, environment)
