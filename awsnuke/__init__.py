"""AWS account teardown tool.

Discovers resources per resource type and deletes them in parallel, respecting
declared inter-type dependencies and retrying through eventual-consistency races.
"""

from __future__ import annotations

__version__ = "0.1.0"
