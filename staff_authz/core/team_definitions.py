"""
Built-in staff team definitions.

Manager permissions are listed as additions on top of the member set;
the catalog always grants managers the union of both.
"""

from __future__ import annotations

# Permissions granted directly to a staff user, independent of teams.
BASE_PERMISSIONS: tuple[str, ...] = (
    "user_management",
    "content_moderation",
    "financial_access",
    "system_config",
    "analytics_view",
    "audit_log_view",
)

BUILTIN_CATALOG_VERSION = "builtin-1"

TEAM_DEFINITIONS: tuple[dict, ...] = (
    {
        "id": "sales",
        "name": "Sales Team",
        "description": "Handles sales activities, lead management, and customer acquisition",
        "responsibilities": [
            "Manage sales leads and opportunities",
            "Contact potential customers",
            "Close deals and manage sales pipeline",
            "Track sales metrics and performance",
            "Coordinate with dealers and premium customers",
        ],
        "member_permissions": [
            "view_leads",
            "respond_to_leads",
            "view_customer_info",
            "view_analytics",
            "view_sales_reports",
            "create_notes",
            "manage_own_leads",
        ],
        "manager_permissions": [
            "assign_leads",
            "view_all_leads",
            "manage_sales_pipeline",
            "manage_team_leads",
            "view_team_performance",
        ],
    },
    {
        "id": "customer_support",
        "name": "Customer Support Team",
        "description": "Provides customer assistance, handles inquiries, and resolves issues",
        "responsibilities": [
            "Respond to customer inquiries",
            "Resolve customer issues and complaints",
            "Manage support tickets",
            "Provide technical assistance",
            "Escalate complex issues to appropriate teams",
        ],
        "member_permissions": [
            "view_support_tickets",
            "respond_to_tickets",
            "view_customer_info",
            "view_user_profiles",
            "view_listings",
            "create_notes",
            "manage_own_tickets",
            "view_knowledge_base",
        ],
        "manager_permissions": [
            "assign_tickets",
            "view_all_tickets",
            "manage_ticket_queue",
            "manage_team_tickets",
            "view_support_metrics",
            "edit_knowledge_base",
        ],
    },
    {
        "id": "content_moderation",
        "name": "Content Moderation Team",
        "description": "Reviews and moderates user-generated content, enforces community standards",
        "responsibilities": [
            "Review flagged listings",
            "Moderate user-generated content",
            "Enforce community guidelines",
            "Handle abuse reports",
            "Approve or reject listings",
            "Suspend or ban violating accounts",
        ],
        "member_permissions": [
            "view_flagged_content",
            "review_listings",
            "approve_listings",
            "reject_listings",
            "view_reports",
            "create_moderation_notes",
            "view_user_profiles",
            "view_moderation_queue",
        ],
        "manager_permissions": [
            "delete_listings",
            "suspend_users",
            "ban_users",
            "assign_moderation_tasks",
            "manage_moderation_queue",
            "view_moderation_metrics",
            "update_content_policies",
        ],
    },
    {
        "id": "technical_operations",
        "name": "Technical Operations Team",
        "description": "Manages technical infrastructure, deployments, and system health",
        "responsibilities": [
            "Monitor system health and performance",
            "Manage deployments and releases",
            "Handle technical incidents",
            "Maintain infrastructure",
            "Perform database operations",
            "Manage API integrations",
        ],
        "member_permissions": [
            "view_system_metrics",
            "view_logs",
            "view_error_reports",
            "view_api_usage",
            "create_technical_notes",
            "view_infrastructure_status",
        ],
        "manager_permissions": [
            "manage_deployments",
            "manage_infrastructure",
            "perform_database_operations",
            "manage_api_keys",
            "manage_system_configuration",
            "access_production_console",
            "manage_backups",
        ],
    },
    {
        "id": "marketing",
        "name": "Marketing Team",
        "description": "Manages marketing campaigns, content, and customer engagement",
        "responsibilities": [
            "Create and manage marketing campaigns",
            "Manage email marketing",
            "Analyze marketing metrics",
            "Create promotional content",
            "Manage social media presence",
            "Coordinate with sales team",
        ],
        "member_permissions": [
            "view_marketing_metrics",
            "view_customer_analytics",
            "create_campaigns",
            "view_email_campaigns",
            "view_promotional_content",
            "create_marketing_notes",
        ],
        "manager_permissions": [
            "manage_campaigns",
            "send_email_campaigns",
            "create_promotional_content",
            "manage_promotional_content",
            "manage_marketing_budget",
            "view_roi_metrics",
            "manage_social_media",
        ],
    },
    {
        "id": "finance",
        "name": "Finance Team",
        "description": "Manages financial operations, billing, and revenue tracking",
        "responsibilities": [
            "Process payments and refunds",
            "Manage subscriptions and billing",
            "Track revenue and financial metrics",
            "Handle invoicing",
            "Manage payment disputes",
            "Generate financial reports",
        ],
        "member_permissions": [
            "view_transactions",
            "view_payment_info",
            "view_subscription_info",
            "view_financial_reports",
            "create_finance_notes",
            "view_invoices",
        ],
        "manager_permissions": [
            "process_refunds",
            "manage_subscriptions",
            "manage_billing",
            "create_invoices",
            "manage_payment_disputes",
            "manage_pricing",
            "view_revenue_metrics",
            "export_financial_data",
        ],
    },
    {
        "id": "product",
        "name": "Product Team",
        "description": "Manages product development, features, and user experience",
        "responsibilities": [
            "Define product roadmap",
            "Manage feature development",
            "Analyze user feedback",
            "Conduct user research",
            "Prioritize product backlog",
            "Coordinate with technical team",
        ],
        "member_permissions": [
            "view_product_metrics",
            "view_user_feedback",
            "view_feature_requests",
            "create_product_notes",
            "view_usage_analytics",
            "view_user_behavior",
        ],
        "manager_permissions": [
            "manage_feature_requests",
            "manage_product_roadmap",
            "prioritize_features",
            "manage_product_releases",
            "conduct_user_research",
            "view_all_analytics",
        ],
    },
    {
        "id": "executive",
        "name": "Executive Team",
        "description": "Leadership team with full system access and strategic oversight",
        "responsibilities": [
            "Strategic planning and decision making",
            "Cross-functional oversight",
            "Company-wide policy setting",
            "Performance review and evaluation",
            "Budget and resource allocation",
            "Final escalation point",
        ],
        "member_permissions": [
            "view_all_metrics",
            "view_all_reports",
            "view_all_analytics",
            "view_all_teams",
            "view_all_users",
            "view_financial_overview",
            "view_strategic_metrics",
            "create_executive_notes",
        ],
        "manager_permissions": [
            "manage_company_settings",
            "manage_all_teams",
            "manage_staff_roles",
            "access_all_systems",
            "override_policies",
            "manage_budgets",
            "strategic_planning",
        ],
    },
)
