"""IdeaForge -- idea-to-UI generation workflow.

Turns a short natural-language project idea into a requirements document, a
development checklist, and a bundle of interdependent UI component files whose
cross-references are healed before the bundle is persisted.
"""

__version__ = "0.1.0"
