"""Analysis modules for redundant global scope detection."""

from scopecheck.analysis.blocks import BlockStack
from scopecheck.analysis.checker import ScopeChecker
from scopecheck.analysis.classify import Classifier, classify
from scopecheck.analysis.filter import DeclarationFilter, SourcePolicy
from scopecheck.analysis.merge import merge_all, merge_block
from scopecheck.analysis.noqa import NoqaMatch, is_noqa_suppressed
from scopecheck.analysis.registry import UsageRegistry

__all__ = [
    "BlockStack",
    "Classifier",
    "DeclarationFilter",
    "NoqaMatch",
    "ScopeChecker",
    "SourcePolicy",
    "UsageRegistry",
    "classify",
    "is_noqa_suppressed",
    "merge_all",
    "merge_block",
]
