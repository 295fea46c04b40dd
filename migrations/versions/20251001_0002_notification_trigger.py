"""Install the message fan-out trigger (disabled).

The trigger ships disabled so the application-level fan-out stays in charge
until an operator enables it with scripts/manage_notification_trigger.py.

Revision ID: 0002_notification_trigger
Revises: 0001_initial_schema
Create Date: 2025-10-01 09:30:00

"""
from alembic import op

from tradingroom.db import triggers


# revision identifiers, used by Alembic.
revision = '0002_notification_trigger'
down_revision = '0001_initial_schema'
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(triggers.CREATE_FUNCTION_SQL)
    op.execute(triggers.DROP_TRIGGER_SQL)
    op.execute(triggers.CREATE_TRIGGER_SQL)
    op.execute(triggers.DISABLE_TRIGGER_SQL)


def downgrade() -> None:
    op.execute(triggers.DROP_TRIGGER_SQL)
    op.execute(triggers.DROP_FUNCTION_SQL)
