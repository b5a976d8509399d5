from __future__ import annotations

# Bulk copies of a full release (gigabytes) to and from object storage
AWS_TRANSFER_TIMEOUT_SECONDS = 2 * 60 * 60.0

# CloudFront control plane calls
AWS_API_TIMEOUT_SECONDS = 2 * 60.0

# The build tool's configure script; signing itself streams with no limit
CONFIGURE_TIMEOUT_SECONDS = 10 * 60.0
