"""Static subscription plan table used to bound ingestion by page count."""

from pydantic import BaseModel


class Plan(BaseModel):
    """A subscription plan and its limits.

    Attributes:
        name:          Plan name as known to the billing collaborator.
        pages_per_pdf: Maximum number of pages a single uploaded PDF may have.
        quota:         Maximum number of PDFs per month (display only).
        max_file_size: Upload size limit advertised to the upload transport.
    """

    name: str
    pages_per_pdf: int
    quota: int
    max_file_size: str


PLANS: tuple[Plan, ...] = (
    Plan(name="Free", pages_per_pdf=5, quota=10, max_file_size="4MB"),
    Plan(name="Pro", pages_per_pdf=25, quota=50, max_file_size="16MB"),
)


def get_plan(name: str) -> Plan:
    """Look up a plan by name.

    Raises:
        KeyError: If no plan with this name exists.
    """
    for plan in PLANS:
        if plan.name.lower() == name.lower():
            return plan
    raise KeyError(f"Unknown plan '{name}'.")


def plan_for_subscription(is_subscribed: bool) -> Plan:
    return get_plan("Pro" if is_subscribed else "Free")
