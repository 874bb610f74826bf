"""Mapping of plain-text ledger account names to canonical account codes.

Rules are evaluated in a fixed order: every exact rule first, then wildcard
rules (patterns ending in ``*``) in declaration order, then a fallback on the
top-level category, and finally UNCLASSIFIED. Overlapping wildcard prefixes
resolve to whichever rule is declared first.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from ledgersync.domain.entities import JournalAccount

CATEGORY_ASSETS = "Assets"
CATEGORY_LIABILITIES = "Liabilities"
CATEGORY_INCOME = "Income"
CATEGORY_EQUITY = "Equity"
CATEGORY_EXPENSES = "Expenses"

CATEGORY_FALLBACKS = {
    CATEGORY_ASSETS: JournalAccount.OTHER_ASSETS.value,
    CATEGORY_LIABILITIES: JournalAccount.OTHER_LIABILITIES.value,
    CATEGORY_INCOME: JournalAccount.OTHER_INCOME.value,
    CATEGORY_EQUITY: JournalAccount.EQUITY.value,
    CATEGORY_EXPENSES: JournalAccount.OTHER_EXPENSES.value,
}


@dataclass(frozen=True)
class AccountRule:
    """Exact account name, or a prefix when the pattern ends with ``*``."""

    pattern: str
    code: str

    @property
    def is_wildcard(self) -> bool:
        return self.pattern.endswith("*")

    def matches(self, account: str) -> bool:
        if self.is_wildcard:
            return account.startswith(self.pattern[:-1])
        return account == self.pattern


DEFAULT_ACCOUNT_RULES: tuple[AccountRule, ...] = (
    # Assets
    AccountRule("Assets:Checking:ChaseBusiness", JournalAccount.CASH.value),
    AccountRule("Assets:Equipment:Hardware", JournalAccount.EQUIPMENT.value),
    AccountRule("Assets:Ownership:AvailableEquityPool", JournalAccount.EQUITY_POOL.value),
    # Liabilities
    AccountRule("Liabilities:CreditCard:ChaseCredit", JournalAccount.CREDIT_CARD_PAYABLE.value),
    # Income
    AccountRule("Income:ClientBillables:*", JournalAccount.REVENUE.value),
    AccountRule("Income:ACHVerification:*", JournalAccount.REVENUE.value),
    # Equity
    AccountRule("Equity:Ownership:*", JournalAccount.EQUITY_OWNERSHIP.value),
    AccountRule("Equity:CompanyFormation", JournalAccount.EQUITY_OWNERSHIP.value),
    # Expenses
    AccountRule("Expenses:Distributions:*", JournalAccount.OWNER_DISTRIBUTIONS.value),
    AccountRule("Expenses:Payroll:*", JournalAccount.PAYROLL_EXPENSE.value),
    AccountRule("Expenses:Equipment:Hardware", JournalAccount.EQUIPMENT_EXPENSE.value),
    AccountRule("Expenses:Fees:*", JournalAccount.OPERATING_EXPENSES_FEES.value),
    AccountRule("Expenses:Legal:*", JournalAccount.OPERATING_EXPENSES_LEGAL.value),
    AccountRule("Expenses:SaaS:*", JournalAccount.OPERATING_EXPENSES_SAAS.value),
    AccountRule("Expenses:Travel:*", JournalAccount.OPERATING_EXPENSES_TRAVEL.value),
    AccountRule("Expenses:Discretionary:*", JournalAccount.OPERATING_EXPENSES_DISCRETIONARY.value),
    AccountRule("Expenses:Taxes:*", JournalAccount.OPERATING_EXPENSES_TAXES.value),
    AccountRule("Expenses:Vendors:*", JournalAccount.OPERATING_EXPENSES_VENDORS.value),
    AccountRule("Expenses:Office:*", JournalAccount.OPERATING_EXPENSES_OFFICE.value),
)


class AccountMapper:
    """Resolve plain-text account names through an ordered rule table."""

    def __init__(self, rules: Sequence[AccountRule] = DEFAULT_ACCOUNT_RULES):
        """Initialize account mapper.

        Args:
            rules: Ordered account rules; exact and wildcard rules may be mixed
        """
        self.rules = tuple(rules)
        self._exact = {}
        for rule in self.rules:
            if not rule.is_wildcard:
                self._exact.setdefault(rule.pattern, rule.code)
        self._wildcards = tuple(rule for rule in self.rules if rule.is_wildcard)

    def map_account(self, account: str) -> str:
        """Map a plain-text account name to a canonical account code.

        Args:
            account: Colon-delimited account name (e.g. "Expenses:Fees:Stripe")

        Returns:
            Canonical code, a generic "other" code for the category, or UNCLASSIFIED
        """
        if account in self._exact:
            return self._exact[account]

        for rule in self._wildcards:
            if rule.matches(account):
                return rule.code

        category = account_category(account)
        if category is not None:
            return CATEGORY_FALLBACKS[category]
        return JournalAccount.UNCLASSIFIED.value


_default_mapper = AccountMapper()


def map_beancount_account(account: str) -> str:
    """Map an account name using the default rule table."""
    return _default_mapper.map_account(account)


def split_account_name(account: str) -> list[str]:
    """Split on colons, dropping empty segments."""
    return [part for part in account.split(":") if part]


def account_category(account: str) -> Optional[str]:
    """Return the top-level category (Assets, Income, ...) or None."""
    parts = split_account_name(account)
    if parts and parts[0] in CATEGORY_FALLBACKS:
        return parts[0]
    return None


def extract_sub_account(account: str) -> str:
    """Human-readable sub-account label.

    "Income:ClientBillables:Vanta" -> "Vanta", "Expenses:Office" -> "Office".
    """
    parts = split_account_name(account)
    if len(parts) >= 3:
        return parts[2]
    if len(parts) >= 2:
        return parts[1]
    return ""
