"""001 – Initial schema: users, accounts, catalog, subscriptions, projects, tasks,
leave, work sessions, alerts, notifications.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# Enums are stored as VARCHAR holding the display value ("Team Leader").
TABLES_IN_DROP_ORDER = [
    "notifications",
    "alerts",
    "work_sessions",
    "leave_requests",
    "leave_balances",
    "calendar_events",
    "tasks",
    "project_notes",
    "project_steps",
    "project_members",
    "projects",
    "process_steps",
    "subscription_history",
    "subscriptions",
    "account_follow_ups",
    "account_notes",
    "business_accounts",
    "service_plans",
    "brand_services",
    "users",
    "teams",
]


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── 1. teams / users ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE teams (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name            VARCHAR(100) NOT NULL UNIQUE,
            team_leader_id  UUID,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE users (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name                 VARCHAR(200) NOT NULL,
            email                VARCHAR(255) NOT NULL UNIQUE,
            mobile               VARCHAR(20),
            password_hash        VARCHAR(255),
            profile_image        VARCHAR(500),
            role                 VARCHAR(32) NOT NULL DEFAULT 'Employee',
            business_account_id  UUID,
            team_id              UUID,
            status               VARCHAR(32) NOT NULL DEFAULT 'Active',
            presence             VARCHAR(32) NOT NULL DEFAULT 'offline',
            previous_presence    VARCHAR(32) DEFAULT 'offline',
            last_seen            TIMESTAMPTZ,
            last_active_at       TIMESTAMPTZ,
            last_message_at      TIMESTAMPTZ,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_users_team_id ON users(team_id)")
    op.execute("CREATE INDEX ix_users_created_at ON users(created_at)")

    # ── 2. catalog ────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE brand_services (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            service_id    VARCHAR(36) NOT NULL UNIQUE,
            service_name  VARCHAR(200) NOT NULL,
            category      VARCHAR(100),
            description   TEXT,
            base_price    NUMERIC(12, 2),
            gst_rate      NUMERIC(5, 2) DEFAULT 18,
            is_active     BOOLEAN NOT NULL DEFAULT TRUE,
            notes         JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at    TIMESTAMPTZ DEFAULT NOW(),
            updated_at    TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_brand_services_service_name ON brand_services(service_name)")

    op.execute("""
        CREATE TABLE service_plans (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            service_id      UUID NOT NULL REFERENCES brand_services(id) ON DELETE CASCADE,
            name            VARCHAR(100) NOT NULL,
            price_monthly   NUMERIC(12, 2) DEFAULT 0,
            price_yearly    NUMERIC(12, 2) DEFAULT 0,
            price_one_time  NUMERIC(12, 2) DEFAULT 0,
            script_based    BOOLEAN NOT NULL DEFAULT FALSE,
            features        JSONB NOT NULL DEFAULT '[]'::jsonb,
            is_active       BOOLEAN NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_service_plans_service_id ON service_plans(service_id)")

    # ── 3. business accounts ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE business_accounts (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            business_name        VARCHAR(255) NOT NULL,
            owner_id             UUID,
            selected_user_id     UUID,
            contact_name         VARCHAR(200) NOT NULL,
            contact_email        VARCHAR(255),
            contact_number       VARCHAR(30) NOT NULL,
            additional_contacts  JSONB NOT NULL DEFAULT '[]'::jsonb,
            gst_number           VARCHAR(20),
            address_line1        VARCHAR(255),
            address_line2        VARCHAR(255),
            city                 VARCHAR(100),
            state                VARCHAR(100),
            country              VARCHAR(100),
            pincode              VARCHAR(10),
            website              VARCHAR(500),
            lead_types           JSONB NOT NULL DEFAULT '[]'::jsonb,
            status               VARCHAR(32) NOT NULL DEFAULT 'Active',
            source_type          VARCHAR(100) NOT NULL DEFAULT 'Direct',
            assigned_to_id       UUID,
            selected_service_id  UUID,
            selected_plan_id     UUID,
            billing_cycle        VARCHAR(32) NOT NULL DEFAULT 'Monthly',
            total_price          INTEGER NOT NULL DEFAULT 0,
            gst_rate             NUMERIC(5, 2) DEFAULT 18,
            client_ids           JSONB NOT NULL DEFAULT '[]'::jsonb,
            is_customer          BOOLEAN NOT NULL DEFAULT FALSE,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE UNIQUE INDEX uq_business_accounts_name_ci "
        "ON business_accounts(lower(business_name))"
    )
    op.execute("CREATE INDEX ix_business_accounts_status ON business_accounts(status)")
    op.execute(
        "CREATE INDEX ix_business_accounts_assigned_to_id ON business_accounts(assigned_to_id)"
    )
    op.execute("CREATE INDEX ix_business_accounts_created_at ON business_accounts(created_at)")

    op.execute("""
        CREATE TABLE account_notes (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            account_id  UUID NOT NULL REFERENCES business_accounts(id) ON DELETE CASCADE,
            text        TEXT NOT NULL,
            author      VARCHAR(200),
            timestamp   TIMESTAMPTZ DEFAULT NOW(),
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_account_notes_account_id ON account_notes(account_id)")

    op.execute("""
        CREATE TABLE account_follow_ups (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            account_id   UUID NOT NULL REFERENCES business_accounts(id) ON DELETE CASCADE,
            date         TIMESTAMPTZ,
            note         TEXT,
            added_by_id  UUID,
            status       VARCHAR(32) NOT NULL DEFAULT 'pending',
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_account_follow_ups_account_id ON account_follow_ups(account_id)")

    # ── 4. subscriptions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE subscriptions (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            business_account_id  UUID NOT NULL,
            service_id           UUID NOT NULL,
            plan_id              UUID,
            plan_name            VARCHAR(100) NOT NULL,
            plan_price_monthly   NUMERIC(12, 2) DEFAULT 0,
            plan_price_yearly    NUMERIC(12, 2) DEFAULT 0,
            plan_price_one_time  NUMERIC(12, 2) DEFAULT 0,
            billing_cycle        VARCHAR(32) NOT NULL DEFAULT 'Monthly',
            amount_paid          NUMERIC(12, 2) DEFAULT 0,
            gst_rate             NUMERIC(5, 2) DEFAULT 18,
            total_with_gst       INTEGER NOT NULL DEFAULT 0,
            order_id             VARCHAR(100),
            payment_id           VARCHAR(100),
            purchase_date        TIMESTAMPTZ DEFAULT NOW(),
            renewal_date         TIMESTAMPTZ,
            status               VARCHAR(32) NOT NULL DEFAULT 'active',
            auto_renew           BOOLEAN NOT NULL DEFAULT TRUE,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX ix_subscriptions_business_account_id "
        "ON subscriptions(business_account_id)"
    )
    op.execute("CREATE INDEX ix_subscriptions_renewal_date ON subscriptions(renewal_date)")

    op.execute("""
        CREATE TABLE subscription_history (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            subscription_id     UUID NOT NULL REFERENCES subscriptions(id) ON DELETE CASCADE,
            previous_plan_name  VARCHAR(100),
            new_plan_name       VARCHAR(100) NOT NULL,
            changed_by          UUID,
            changed_at          TIMESTAMPTZ DEFAULT NOW(),
            note                TEXT
        )
    """)
    op.execute(
        "CREATE INDEX ix_subscription_history_subscription_id "
        "ON subscription_history(subscription_id)"
    )

    # ── 5. step templates / projects ──────────────────────────────────────
    op.execute("""
        CREATE TABLE process_steps (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            step_name    VARCHAR(200) NOT NULL,
            step_type    VARCHAR(200) NOT NULL,
            url          VARCHAR(500) NOT NULL DEFAULT '',
            description  TEXT NOT NULL DEFAULT '',
            status       VARCHAR(30) NOT NULL DEFAULT 'Active',
            "order"      INTEGER NOT NULL DEFAULT 1,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_process_steps_step_type ON process_steps(step_type)")

    op.execute("""
        CREATE TABLE projects (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name         VARCHAR(255) NOT NULL,
            description  TEXT,
            status       VARCHAR(32) NOT NULL DEFAULT 'Planned',
            start_date   DATE NOT NULL,
            end_date     DATE,
            account_id   UUID NOT NULL,
            service_id   UUID NOT NULL,
            created_by   UUID NOT NULL,
            attachments  JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            updated_at   TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_projects_status ON projects(status)")
    op.execute("CREATE INDEX ix_projects_account_id ON projects(account_id)")
    op.execute("CREATE INDEX ix_projects_updated_at ON projects(updated_at)")

    op.execute("""
        CREATE TABLE project_members (
            project_id  UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            PRIMARY KEY (project_id, user_id)
        )
    """)

    op.execute("""
        CREATE TABLE project_steps (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            project_id   UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            step_name    VARCHAR(200) NOT NULL,
            url          VARCHAR(500) NOT NULL DEFAULT '',
            description  TEXT NOT NULL DEFAULT '',
            status       VARCHAR(32) NOT NULL DEFAULT 'Pending',
            "order"      INTEGER NOT NULL DEFAULT 1
        )
    """)
    op.execute("CREATE INDEX ix_project_steps_project_id ON project_steps(project_id)")

    op.execute("""
        CREATE TABLE project_notes (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            project_id  UUID NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
            text        TEXT NOT NULL,
            author      VARCHAR(200) NOT NULL,
            timestamp   TIMESTAMPTZ DEFAULT NOW(),
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_project_notes_project_id ON project_notes(project_id)")

    # ── 6. tasks ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE tasks (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            title           VARCHAR(255) NOT NULL,
            description     TEXT,
            assigned_to_id  UUID NOT NULL,
            assigned_by_id  UUID,
            account_id      UUID,
            service_id      UUID,
            status          VARCHAR(32) NOT NULL DEFAULT 'To Do',
            assigned_date   TIMESTAMPTZ DEFAULT NOW(),
            due_date        TIMESTAMPTZ,
            attachments     JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_tasks_assignee_status ON tasks(assigned_to_id, status)")
    op.execute("CREATE INDEX ix_tasks_created_at ON tasks(created_at)")

    op.execute("""
        CREATE TABLE calendar_events (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL,
            role        VARCHAR(32),
            title       VARCHAR(255) NOT NULL,
            description TEXT,
            start_at    TIMESTAMPTZ NOT NULL,
            end_at      TIMESTAMPTZ,
            all_day     BOOLEAN NOT NULL DEFAULT FALSE,
            account_id  UUID,
            service_id  UUID,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_calendar_events_user_start ON calendar_events(user_id, start_at)")

    # ── 7. leave ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_balances (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL,
            year        INTEGER NOT NULL,
            sick        INTEGER DEFAULT 8,
            casual      INTEGER DEFAULT 12,
            medical     INTEGER DEFAULT 5,
            paid        INTEGER,
            unpaid      INTEGER,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_leave_balance_user_year UNIQUE (user_id, year)
        )
    """)

    op.execute("""
        CREATE TABLE leave_requests (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id        UUID NOT NULL,
            type           VARCHAR(32) NOT NULL,
            from_date      DATE NOT NULL,
            to_date        DATE NOT NULL,
            reason         TEXT NOT NULL,
            status         VARCHAR(32) NOT NULL DEFAULT 'Pending',
            approval       JSONB NOT NULL,
            current_level  VARCHAR(32) NOT NULL DEFAULT 'Team Leader',
            reject_reason  TEXT,
            created_at     TIMESTAMPTZ DEFAULT NOW(),
            updated_at     TIMESTAMPTZ DEFAULT NOW(),
            CHECK (from_date <= to_date)
        )
    """)
    op.execute("CREATE INDEX ix_leave_requests_user_id ON leave_requests(user_id)")
    op.execute(
        "CREATE INDEX ix_leave_requests_level_status ON leave_requests(current_level, status)"
    )

    # ── 8. work sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE work_sessions (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id      UUID NOT NULL,
            name         VARCHAR(200) NOT NULL,
            email        VARCHAR(255) NOT NULL,
            login_time   TIMESTAMPTZ NOT NULL,
            logout_time  TIMESTAMPTZ,
            work_day     DATE NOT NULL,
            total_hours  DOUBLE PRECISION NOT NULL DEFAULT 0,
            eod          TEXT NOT NULL DEFAULT '',
            date         TIMESTAMPTZ DEFAULT NOW(),
            account_ids  JSONB NOT NULL DEFAULT '[]'::jsonb,
            service_ids  JSONB NOT NULL DEFAULT '[]'::jsonb,
            CONSTRAINT uq_work_session_user_day UNIQUE (user_id, work_day)
        )
    """)
    op.execute("CREATE INDEX ix_work_sessions_login_time ON work_sessions(login_time)")

    # ── 9. alerts / notifications ─────────────────────────────────────────
    op.execute("""
        CREATE TABLE alerts (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL,
            message     TEXT NOT NULL,
            type        VARCHAR(32) NOT NULL DEFAULT 'General',
            ref_id      UUID,
            is_read     BOOLEAN NOT NULL DEFAULT FALSE,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_alerts_user_created ON alerts(user_id, created_at)")

    op.execute("""
        CREATE TABLE notifications (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL,
            message     TEXT NOT NULL,
            type        VARCHAR(32) NOT NULL DEFAULT 'info',
            read        BOOLEAN NOT NULL DEFAULT FALSE,
            item_id     UUID,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_notifications_user_id ON notifications(user_id)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in TABLES_IN_DROP_ORDER:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
