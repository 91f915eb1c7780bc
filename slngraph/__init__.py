"""slngraph - project dependency graphs and solution files for MSBuild trees.

Discovers every ``.csproj`` and ``.vcxproj`` under a source tree, infers the
dependencies between them, computes the set of projects a product needs and
writes that set out as a Visual Studio solution plus a DGML graph.
"""

__version__ = "0.1.0"
