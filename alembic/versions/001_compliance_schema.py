"""001 – Compliance schema: enums, tables, indexes.

Revision ID: 001_compliance_schema
Revises:
Create Date: 2026-10-18 09:30:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_compliance_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("employee_status", ["active", "inactive", "on_leave"]),
    ("document_category", ["admission", "recurring", "compliance", "personal"]),
    ("document_status", ["pending", "valid", "expired", "rejected"]),
    ("recurring_document_type", ["timesheet", "payslip"]),
    ("compliance_status", ["pending", "compliant", "warning", "non_compliant"]),
    (
        "alert_type",
        [
            "late_arrival",
            "early_departure",
            "unauthorized_overtime",
            "missing_punch",
            "absence_without_justification",
            "payslip_calculation_error",
            "irregular_discount",
            "salary_mismatch",
            "document_expired",
            "document_missing",
            "document_expiring_soon",
        ],
    ),
    ("alert_severity", ["low", "medium", "high", "critical"]),
    ("alert_status", ["open", "acknowledged", "resolved", "dismissed"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. departments ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE departments (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(100) NOT NULL,
            description TEXT,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)

    # ── 2. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name             VARCHAR(200) NOT NULL,
            tax_id           VARCHAR(14) NOT NULL UNIQUE,
            email            VARCHAR(320),
            phone            VARCHAR(20),
            position         VARCHAR(100),
            department_id    UUID REFERENCES departments(id),
            admission_date   DATE,
            salary           NUMERIC(10, 2),
            work_hours       VARCHAR(50) DEFAULT '08:00-17:00',
            status           employee_status NOT NULL DEFAULT 'active',
            compliance_score INTEGER DEFAULT 100,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_employees_position ON employees (position)")
    op.execute("CREATE INDEX ix_employees_department ON employees (department_id)")

    # ── 3. document_types ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE document_types (
            id            UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name          VARCHAR(100) NOT NULL,
            description   TEXT,
            category      document_category NOT NULL,
            is_required   BOOLEAN DEFAULT TRUE,
            validity_days INTEGER,
            created_at    TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)

    # ── 4. documents ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE documents (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id),
            document_type_id UUID NOT NULL REFERENCES document_types(id),
            file_name        VARCHAR(255) NOT NULL,
            file_url         TEXT NOT NULL DEFAULT '',
            file_key         VARCHAR(255) NOT NULL DEFAULT '',
            mime_type        VARCHAR(100),
            file_size        INTEGER,
            status           document_status NOT NULL DEFAULT 'pending',
            expires_at       TIMESTAMPTZ,
            extracted_data   JSONB,
            uploaded_by      UUID,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at       TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute(
        "CREATE INDEX ix_documents_employee_type ON documents (employee_id, document_type_id)"
    )
    op.execute(
        "CREATE INDEX ix_documents_expiry ON documents (expires_at) WHERE status = 'valid'"
    )

    # ── 5. document_templates ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE document_templates (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name               VARCHAR(150) NOT NULL,
            description        TEXT,
            position           VARCHAR(100),
            department_id      UUID REFERENCES departments(id),
            parent_template_id UUID REFERENCES document_templates(id),
            is_base            BOOLEAN DEFAULT FALSE,
            is_active          BOOLEAN DEFAULT TRUE,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at         TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)

    # ── 6. template_items ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE template_items (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            template_id        UUID NOT NULL REFERENCES document_templates(id) ON DELETE CASCADE,
            document_type_id   UUID NOT NULL REFERENCES document_types(id),
            is_required        BOOLEAN DEFAULT TRUE,
            has_expiration     BOOLEAN DEFAULT FALSE,
            expiration_days    INTEGER,
            alert_days_before  INTEGER,
            requires_signature BOOLEAN DEFAULT FALSE,
            is_auto_generated  BOOLEAN DEFAULT FALSE,
            sort_order         INTEGER DEFAULT 0,
            condition          JSONB
        )
    """)
    op.execute("CREATE INDEX ix_template_items_template ON template_items (template_id, sort_order)")

    # ── 7. recurring_documents ────────────────────────────────────────────
    op.execute("""
        CREATE TABLE recurring_documents (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id       UUID NOT NULL REFERENCES employees(id),
            type              recurring_document_type NOT NULL,
            reference_date    DATE NOT NULL,
            file_name         VARCHAR(255) NOT NULL,
            file_url          TEXT NOT NULL,
            file_key          VARCHAR(255) NOT NULL,
            ocr_text          TEXT,
            extracted_data    JSONB,
            ai_analysis       JSONB,
            compliance_score  INTEGER,
            compliance_status compliance_status NOT NULL DEFAULT 'pending',
            processed_at      TIMESTAMPTZ,
            uploaded_by       UUID,
            created_at        TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute(
        "CREATE INDEX ix_recurring_documents_employee_ref "
        "ON recurring_documents (employee_id, reference_date)"
    )

    # ── 8. compliance_alerts ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE compliance_alerts (
            id                    UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id           UUID NOT NULL REFERENCES employees(id),
            recurring_document_id UUID REFERENCES recurring_documents(id),
            document_id           UUID REFERENCES documents(id),
            type                  alert_type NOT NULL,
            severity              alert_severity NOT NULL,
            title                 VARCHAR(255) NOT NULL,
            description           TEXT NOT NULL,
            details               JSONB,
            status                alert_status NOT NULL DEFAULT 'open',
            resolved_by           UUID,
            resolved_at           TIMESTAMPTZ,
            resolution_notes      TEXT,
            created_at            TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute(
        "CREATE INDEX ix_compliance_alerts_employee_status "
        "ON compliance_alerts (employee_id, status)"
    )

    # ── 9. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID,
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail (entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_action ON audit_trail (action)")

    # ── 10. app_settings ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE app_settings (
            key         VARCHAR(100) PRIMARY KEY,
            value       JSONB NOT NULL,
            description TEXT,
            updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    """)


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Reverse dependency order
    tables = [
        "app_settings",
        "audit_trail",
        "compliance_alerts",
        "recurring_documents",
        "template_items",
        "document_templates",
        "documents",
        "document_types",
        "employees",
        "departments",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
