"""Row-level security policies and trusted membership helpers

Revision ID: 002
Revises: 001
Create Date: 2026-10-18 00:00:01.000000

The application role connects with ``app.caller_id`` set per transaction.
Membership lookups go through SECURITY DEFINER STABLE functions so that
policies never query a table guarded by the policy being evaluated.
Maintenance jobs without a caller run as the table owner, which RLS does
not restrict.

"""

from collections.abc import Sequence

from alembic import op
from src.alembic.migration_utils import is_postgres

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

HELPERS = [
    """
    CREATE OR REPLACE FUNCTION app_caller_id() RETURNS uuid
    LANGUAGE sql STABLE AS $$
        SELECT NULLIF(current_setting('app.caller_id', true), '')::uuid
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_role_rank(role text) RETURNS integer
    LANGUAGE sql IMMUTABLE AS $$
        SELECT CASE role
            WHEN 'owner' THEN 4
            WHEN 'admin' THEN 3
            WHEN 'editor' THEN 2
            WHEN 'member' THEN 2
            WHEN 'reader' THEN 1
            ELSE 0
        END
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_org_rank(org uuid) RETURNS integer
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT COALESCE(MAX(app_role_rank(role)), 0)
        FROM organization_members
        WHERE organization_id = org AND user_id = app_caller_id()
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_project_rank(project uuid) RETURNS integer
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT GREATEST(
            COALESCE((
                SELECT app_role_rank(pm.role) FROM project_members pm
                WHERE pm.project_id = project AND pm.user_id = app_caller_id()
            ), 0),
            COALESCE((
                SELECT CASE WHEN om.role IN ('owner', 'admin') THEN 3 ELSE 0 END
                FROM projects p
                JOIN organization_members om ON om.organization_id = p.organization_id
                WHERE p.id = project AND om.user_id = app_caller_id()
            ), 0),
            COALESCE((
                SELECT CASE WHEN tm.role IN ('owner', 'admin') THEN 2 WHEN tm.role = 'member' THEN 1 ELSE 0 END
                FROM projects p
                JOIN team_members tm ON tm.team_id = p.team_id
                WHERE p.id = project AND tm.user_id = app_caller_id()
            ), 0)
        )
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_task_project(task uuid) RETURNS uuid
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT project_id FROM tasks WHERE id = task
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_team_org(team uuid) RETURNS uuid
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT organization_id FROM teams WHERE id = team
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_org_creator(org uuid) RETURNS uuid
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT created_by FROM organizations WHERE id = org
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_project_creator(project uuid) RETURNS uuid
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT created_by FROM projects WHERE id = project
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_caller_email() RETURNS text
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT lower(email) FROM profiles WHERE id = app_caller_id()
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_invited_role(project uuid) RETURNS text
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT role FROM project_invitations
        WHERE project_id = project
          AND lower(email) = app_caller_email()
          AND status = 'pending'
          AND expires_at > (now() AT TIME ZONE 'utc')
        ORDER BY created_at DESC
        LIMIT 1
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_invited_to_org(org uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path = public AS $$
        SELECT EXISTS (
            SELECT 1 FROM projects p
            WHERE p.organization_id = org AND app_invited_role(p.id) IS NOT NULL
        )
    $$
    """,
]

HELPER_NAMES = [
    "app_invited_to_org(uuid)",
    "app_invited_role(uuid)",
    "app_project_creator(uuid)",
    "app_org_creator(uuid)",
    "app_caller_email()",
    "app_team_org(uuid)",
    "app_task_project(uuid)",
    "app_project_rank(uuid)",
    "app_org_rank(uuid)",
    "app_role_rank(text)",
    "app_caller_id()",
]


def _via_task(column: str = "task_id") -> str:
    return f"app_task_project({column})"


# table -> (read predicate, write predicate)
POLICIES: dict[str, tuple[str, str]] = {
    "profiles": ("app_caller_id() IS NOT NULL", "id = app_caller_id()"),
    "organizations": ("app_org_rank(id) >= 2", "app_org_rank(id) >= 3"),
    "organization_members": (
        "app_org_rank(organization_id) >= 2",
        "app_org_rank(organization_id) >= 3",
    ),
    "teams": ("app_org_rank(organization_id) >= 2", "app_org_rank(organization_id) >= 3"),
    "team_members": ("app_org_rank(app_team_org(team_id)) >= 2", "app_org_rank(app_team_org(team_id)) >= 3"),
    "projects": ("app_project_rank(id) >= 1", "app_project_rank(id) >= 3"),
    "project_members": (
        "app_project_rank(project_id) >= 1",
        "app_project_rank(project_id) >= 3",
    ),
    "project_invitations": (
        "app_project_rank(project_id) >= 3 OR lower(email) = app_caller_email()",
        "app_project_rank(project_id) >= 3 OR lower(email) = app_caller_email()",
    ),
    "milestones": ("app_project_rank(project_id) >= 1", "app_project_rank(project_id) >= 2"),
    "tasks": ("app_project_rank(project_id) >= 1", "app_project_rank(project_id) >= 2"),
    "subtasks": (f"app_project_rank({_via_task()}) >= 1", f"app_project_rank({_via_task()}) >= 2"),
    "task_assignments": (f"app_project_rank({_via_task()}) >= 1", f"app_project_rank({_via_task()}) >= 2"),
    "task_dependencies": (
        f"app_project_rank({_via_task('blocked_id')}) >= 1",
        f"app_project_rank({_via_task('blocked_id')}) >= 2",
    ),
    "task_recurrences": (f"app_project_rank({_via_task()}) >= 1", f"app_project_rank({_via_task()}) >= 2"),
    "comments": ("app_project_rank(project_id) >= 1", "app_project_rank(project_id) >= 2"),
    "attachments": ("app_project_rank(project_id) >= 1", "app_project_rank(project_id) >= 2"),
    "mentions": (
        "app_project_rank(project_id) >= 1",
        "app_project_rank(project_id) >= 2 OR mentioned_user_id = app_caller_id()",
    ),
    "time_entries": (
        f"app_project_rank({_via_task()}) >= 1",
        f"user_id = app_caller_id() AND app_project_rank({_via_task()}) >= 2",
    ),
    "attention_items": ("user_id = app_caller_id()", "app_caller_id() IS NOT NULL"),
    "notifications": ("user_id = app_caller_id()", "app_caller_id() IS NOT NULL"),
    "activity_log": ("app_project_rank(project_id) >= 1", "app_project_rank(project_id) >= 1"),
    "organization_announcements": (
        "app_org_rank(organization_id) >= 2",
        "app_org_rank(organization_id) >= 3",
    ),
    "organization_meetings": ("app_org_rank(organization_id) >= 2", "app_org_rank(organization_id) >= 3"),
}


def upgrade() -> None:
    if not is_postgres():
        return

    for statement in HELPERS:
        op.execute(statement)

    for table, (read, write) in POLICIES.items():
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"CREATE POLICY {table}_read ON {table} FOR SELECT USING ({read})")
        op.execute(f"CREATE POLICY {table}_insert ON {table} FOR INSERT WITH CHECK ({write})")
        op.execute(f"CREATE POLICY {table}_update ON {table} FOR UPDATE USING ({write}) WITH CHECK ({write})")
        op.execute(f"CREATE POLICY {table}_delete ON {table} FOR DELETE USING ({write})")

    # Creating an organization or project precedes any membership edge
    op.execute(
        "CREATE POLICY organizations_create ON organizations FOR INSERT WITH CHECK (created_by = app_caller_id())"
    )
    op.execute(
        "CREATE POLICY projects_create ON projects FOR INSERT "
        "WITH CHECK (created_by = app_caller_id() AND app_org_rank(organization_id) >= 2)"
    )
    op.execute(
        "CREATE POLICY organization_members_bootstrap ON organization_members FOR INSERT "
        "WITH CHECK (user_id = app_caller_id() AND role = 'owner' "
        "AND app_org_creator(organization_id) = app_caller_id())"
    )
    op.execute(
        "CREATE POLICY project_members_bootstrap ON project_members FOR INSERT "
        "WITH CHECK (user_id = app_caller_id() AND role = 'owner' "
        "AND app_project_creator(project_id) = app_caller_id())"
    )
    # Members may leave, and invitees may join with the invited role
    for table in ("organization_members", "team_members", "project_members"):
        op.execute(f"CREATE POLICY {table}_leave ON {table} FOR DELETE USING (user_id = app_caller_id())")
    op.execute(
        "CREATE POLICY project_members_accept ON project_members FOR INSERT "
        "WITH CHECK (user_id = app_caller_id() AND role = app_invited_role(project_id))"
    )
    op.execute(
        "CREATE POLICY organization_members_accept ON organization_members FOR INSERT "
        "WITH CHECK (user_id = app_caller_id() AND role = 'member' AND app_invited_to_org(organization_id))"
    )
    # Activity rows stay readable after their project is gone
    op.execute(
        "CREATE POLICY activity_log_actor ON activity_log FOR SELECT USING (actor_id = app_caller_id())"
    )


def downgrade() -> None:
    if not is_postgres():
        return

    op.execute("DROP POLICY IF EXISTS activity_log_actor ON activity_log")
    op.execute("DROP POLICY IF EXISTS organization_members_accept ON organization_members")
    op.execute("DROP POLICY IF EXISTS project_members_accept ON project_members")
    for table in ("organization_members", "team_members", "project_members"):
        op.execute(f"DROP POLICY IF EXISTS {table}_leave ON {table}")
    op.execute("DROP POLICY IF EXISTS project_members_bootstrap ON project_members")
    op.execute("DROP POLICY IF EXISTS organization_members_bootstrap ON organization_members")
    op.execute("DROP POLICY IF EXISTS projects_create ON projects")
    op.execute("DROP POLICY IF EXISTS organizations_create ON organizations")
    for table in POLICIES:
        for suffix in ("read", "insert", "update", "delete"):
            op.execute(f"DROP POLICY IF EXISTS {table}_{suffix} ON {table}")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
    for name in HELPER_NAMES:
        op.execute(f"DROP FUNCTION IF EXISTS {name}")
