"""Push parsing module for refresher."""

from refresher.push.descriptor import PushDescriptor, is_branch_ref, parse_ref

__all__ = ["PushDescriptor", "is_branch_ref", "parse_ref"]
