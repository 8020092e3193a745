"""Viewer-request URI rewriting for the CloudFront distribution.

Directory-style requests (``/blog``, ``/blog/``) are mapped onto the index
document stored under that prefix in S3. Requests for a recognised static file
pass through untouched. The same rule is rendered to JavaScript by
``render_function_code`` for deployment as a CloudFront Function.
"""

from __future__ import annotations

import re

from src.config import SITE_CONFIG, SiteConfig


def has_static_extension(path: str, config: SiteConfig = SITE_CONFIG) -> bool:
    """Return True when the final path segment ends in a recognised extension."""
    segment = path.rsplit("/", 1)[-1].lower()
    return any(segment.endswith(f".{ext.lower()}") for ext in config.static_extensions)


def rewrite(path: str, config: SiteConfig = SITE_CONFIG) -> str:
    """Return the effective object path for a request path."""
    if has_static_extension(path, config):
        return path
    index_suffix = f"/{config.root_document}"
    if path.endswith(index_suffix):
        return path
    if not path or path.endswith("/"):
        return f"{path or '/'}{config.root_document}"
    return f"{path}{index_suffix}"


def rewrite_uri(uri: str, config: SiteConfig = SITE_CONFIG) -> str:
    """Rewrite the path of a raw URI, keeping any query string and fragment as-is."""
    cut = len(uri)
    for marker in ("?", "#"):
        idx = uri.find(marker)
        if idx != -1:
            cut = min(cut, idx)
    return rewrite(uri[:cut], config) + uri[cut:]


def handler(event, context=None):
    """Apply the rewrite to a CloudFront viewer-request event and return the request."""
    request = event["request"]
    request["uri"] = rewrite(request.get("uri", ""))
    return request


_FUNCTION_TEMPLATE = """\
function handler(event) {
  var request = event.request;
  var uri = request.uri;
  var hasFileExtension = /\\.(%(extensions)s)$/i.test(uri.split('/').pop());

  if (!hasFileExtension && !uri.endsWith('/%(root)s')) {
    if (uri === '' || uri.endsWith('/')) {
      request.uri = (uri || '/') + '%(root)s';
    } else {
      request.uri = uri + '/%(root)s';
    }
  }

  return request;
}
"""


def render_function_code(config: SiteConfig = SITE_CONFIG) -> str:
    """Render the CloudFront Function source implementing ``rewrite``."""
    return _FUNCTION_TEMPLATE % {
        "extensions": "|".join(re.escape(ext) for ext in config.static_extensions),
        "root": config.root_document,
    }
