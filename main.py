#!/usr/bin/env python3
"""slngraph - project dependency graphs and solution files

Discovers the MSBuild projects of a source tree, infers the dependencies
between them and writes the projects a product needs as a solution file.

Usage:
    slngraph build <search_dir> -o <solution> [options]
    slngraph parse <solution>
    slngraph orphans <search_dir>

Layout:
- parsers/: MSBuild evaluation, project model, source scanning, manifest
- graph/: Identity registry, project graph, dependency inference, closure
- runtime/: Worker, ingestion, corrections, pipeline, configuration
- export/: Solution, DGML and listing exporters
- analysis/: Orphaned source detection
"""

import sys

from slngraph.main import main

if __name__ == "__main__":
    sys.exit(main())
