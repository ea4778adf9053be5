from approval_engine.config import Settings, settings as default_settings
from approval_engine.domain.approval.entities import RequestKind
from approval_engine.domain.roles import EXECUTIVE_ROLES, HR_ROLES, Role, parse_roles

from .policy import (
    ChainPolicy,
    Level,
    PolicyNotConfigured,
    StepRule,
    amount_above,
    any_of,
    category_in,
    not_,
    request_type_in,
    requester_in,
)


class DefaultPolicyProvider:
    """
    PolicyProvider holding the organisation's routing tables.

    Thresholds and role sets come from settings and are read once, when the
    provider is built. Chains already frozen on a request are never recomputed.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or default_settings
        self._policies = self.build_policies(self._settings)

    def for_kind(self, *, kind: RequestKind) -> ChainPolicy:
        policy = self._policies.get(kind)
        if policy is None:
            raise PolicyNotConfigured(kind)
        return policy

    @staticmethod
    def build_policies(settings: Settings) -> dict[RequestKind, ChainPolicy]:
        """Define the ordered approval levels per request kind."""
        lead_roles = parse_roles(settings.lead_level_roles)
        payout_roles = parse_roles(settings.payout_roles)

        permission = ChainPolicy(
            kind=RequestKind.PERMISSION,
            rules=(
                StepRule(
                    level=Level.TEAM_LEADER,
                    required_roles=frozenset({Role.TEAM_LEADER}),
                    skip_for_roles=lead_roles,
                ),
                StepRule(level=Level.TEAM_MANAGER, required_roles=frozenset({Role.TEAM_MANAGER})),
                StepRule(level=Level.HR, required_roles=HR_ROLES),
            ),
        )

        regularization = ChainPolicy(
            kind=RequestKind.REGULARIZATION,
            rules=(
                StepRule(
                    level=Level.TEAM_MANAGER,
                    required_roles=frozenset({Role.TEAM_MANAGER}),
                    when=not_(request_type_in(settings.regularization_hr_only_types)),
                    skip_for_roles=frozenset({Role.TEAM_MANAGER}) | HR_ROLES | EXECUTIVE_ROLES,
                ),
                StepRule(
                    level=Level.HR,
                    required_roles=HR_ROLES,
                    skip_for_roles=HR_ROLES | EXECUTIVE_ROLES,
                ),
                # HR staff cannot route their own corrections through HR
                StepRule(
                    level=Level.VP_ADMIN,
                    required_roles=EXECUTIVE_ROLES,
                    when=requester_in(HR_ROLES),
                    skip_for_roles=EXECUTIVE_ROLES,
                ),
            ),
        )

        reimbursement = ChainPolicy(
            kind=RequestKind.REIMBURSEMENT,
            rules=(
                StepRule(
                    level=Level.MANAGER,
                    required_roles=frozenset({Role.TEAM_LEADER, Role.TEAM_MANAGER}),
                ),
                StepRule(
                    level=Level.HR,
                    required_roles=HR_ROLES,
                    when=any_of(
                        amount_above(settings.reimbursement_hr_threshold),
                        category_in(settings.reimbursement_sensitive_categories),
                    ),
                ),
                StepRule(
                    level=Level.FINANCE,
                    required_roles=frozenset({Role.FINANCE}),
                    when=amount_above(settings.reimbursement_finance_threshold),
                ),
            ),
            supports_payout=True,
            payout_roles=payout_roles,
        )

        return {
            RequestKind.PERMISSION: permission,
            RequestKind.REGULARIZATION: regularization,
            RequestKind.REIMBURSEMENT: reimbursement,
        }
