from .document import DocumentState, KnowledgeMode, ReferenceDocument

__all__ = ["DocumentState", "KnowledgeMode", "ReferenceDocument"]
