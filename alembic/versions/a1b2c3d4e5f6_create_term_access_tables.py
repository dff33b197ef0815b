"""create_term_access_tables

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-15

Creates the host tables read by the access layer (terms, hierarchy,
content items, users, roles), the term_permissions source table and the
derived node_access_grants / access_policies tables. Seeds the built-in
anonymous and authenticated roles.
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "taxonomy_terms",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("vocabulary", sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_taxonomy_terms_id", "taxonomy_terms", ["id"], unique=False)
    op.create_index("ix_taxonomy_terms_name", "taxonomy_terms", ["name"], unique=False)
    op.create_index("ix_taxonomy_terms_vocabulary", "taxonomy_terms", ["vocabulary"], unique=False)

    op.create_table(
        "taxonomy_term_hierarchy",
        sa.Column("term_id", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["term_id"], ["taxonomy_terms.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["taxonomy_terms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("term_id", "parent_id"),
    )
    op.create_index(
        "ix_taxonomy_term_hierarchy_parent_id", "taxonomy_term_hierarchy", ["parent_id"], unique=False
    )

    op.create_table(
        "content_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("published", sa.Boolean(), nullable=False),
        sa.Column("langcode", sa.String(length=12), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_content_items_id", "content_items", ["id"], unique=False)

    op.create_table(
        "content_item_terms",
        sa.Column("content_item_id", sa.Integer(), nullable=False),
        sa.Column("term_id", sa.Integer(), nullable=False),
        sa.Column("field_name", sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(["content_item_id"], ["content_items.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["term_id"], ["taxonomy_terms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("content_item_id", "term_id", "field_name"),
    )
    op.create_index("ix_content_item_terms_term_id", "content_item_terms", ["term_id"], unique=False)

    roles = op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index("ix_roles_id", "roles", ["id"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_username", "users", ["username"], unique=False)

    op.create_table(
        "user_roles",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "role_id"),
    )

    op.create_table(
        "term_permissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("term_id", sa.Integer(), nullable=False),
        sa.Column("principal_kind", sa.Enum("user", "role", name="principal_kind"), nullable=False),
        sa.Column("principal_id", sa.String(length=64), nullable=False),
        sa.ForeignKeyConstraint(["term_id"], ["taxonomy_terms.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("term_id", "principal_kind", "principal_id", name="uq_term_permission_principal"),
    )
    op.create_index("ix_term_permissions_id", "term_permissions", ["id"], unique=False)
    op.create_index("ix_term_permissions_term_id", "term_permissions", ["term_id"], unique=False)
    op.create_index("ix_term_perm_principal", "term_permissions", ["principal_kind", "principal_id"], unique=False)

    op.create_table(
        "node_access_grants",
        sa.Column("content_item_id", sa.Integer(), nullable=False),
        sa.Column("gid", sa.Integer(), nullable=False),
        sa.Column("realm", sa.String(length=255), nullable=False),
        sa.Column("language", sa.String(length=12), nullable=False),
        sa.Column("grant_view", sa.Boolean(), nullable=False),
        sa.Column("grant_update", sa.Boolean(), nullable=False),
        sa.Column("grant_delete", sa.Boolean(), nullable=False),
        sa.Column("fallback", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["content_item_id"], ["content_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("content_item_id", "gid", "realm", "language"),
    )
    op.create_index("ix_node_access_grants_gid", "node_access_grants", ["gid"], unique=False)

    op.create_table(
        "access_policies",
        sa.Column("gid", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("policy_key", sa.String(length=1024), nullable=False),
        sa.Column("term_ids", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("gid"),
        sa.UniqueConstraint("policy_key"),
    )

    op.create_table(
        "access_policy_gid_sequence",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("last_gid", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.bulk_insert(
        roles,
        [
            {"name": "anonymous", "permissions": []},
            {"name": "authenticated", "permissions": []},
        ],
    )


def downgrade() -> None:
    op.drop_table("access_policy_gid_sequence")
    op.drop_table("access_policies")
    op.drop_index("ix_node_access_grants_gid", table_name="node_access_grants")
    op.drop_table("node_access_grants")
    op.drop_index("ix_term_perm_principal", table_name="term_permissions")
    op.drop_index("ix_term_permissions_term_id", table_name="term_permissions")
    op.drop_index("ix_term_permissions_id", table_name="term_permissions")
    op.drop_table("term_permissions")
    sa.Enum(name="principal_kind").drop(op.get_bind(), checkfirst=True)
    op.drop_table("user_roles")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
    op.drop_index("ix_roles_id", table_name="roles")
    op.drop_table("roles")
    op.drop_index("ix_content_item_terms_term_id", table_name="content_item_terms")
    op.drop_table("content_item_terms")
    op.drop_index("ix_content_items_id", table_name="content_items")
    op.drop_table("content_items")
    op.drop_index("ix_taxonomy_term_hierarchy_parent_id", table_name="taxonomy_term_hierarchy")
    op.drop_table("taxonomy_term_hierarchy")
    op.drop_index("ix_taxonomy_terms_vocabulary", table_name="taxonomy_terms")
    op.drop_index("ix_taxonomy_terms_name", table_name="taxonomy_terms")
    op.drop_index("ix_taxonomy_terms_id", table_name="taxonomy_terms")
    op.drop_table("taxonomy_terms")
