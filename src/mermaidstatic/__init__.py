"""Build-time pre-rendering of Mermaid diagrams embedded in Markdown/MDX content.

Modules
-------
core/       — models, identity digests, metadata headers, content scanning, config
render/     — task planning, renderer backends, bounded executor, run summary
pipeline    — per-theme orchestration with run-once guard
cli         — ``mermaid-static`` command line
"""

__version__ = "0.1.0"
