"""This module computes the approval chain a request has to pass through."""
from .policy import (
    ChainPolicy,
    Level,
    PolicyNotConfigured,
    ResolutionContext,
    StepRule,
)
from .policy_provider import PolicyProvider

from .default_policy_provider import DefaultPolicyProvider
from .fake_policy_provider import FakePolicyProvider
