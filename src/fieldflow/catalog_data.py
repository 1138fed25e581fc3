"""Built-in stage, role, and handoff-rule definitions.

Logic lives in catalog.py; this file is pure data. Every table is a list of
JSON-compatible dicts so the same parser handles built-in and custom data.

Pipeline phases:
  1. Lead acquisition & qualification
  2. Sales process
  3. Contract management
  4. Production & fulfillment
  5. Logistics & delivery
  6. Installation & setup
  7. Ongoing customer management
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class Stage(StrEnum):
    LEAD_SUBMISSION = "lead_submission"
    LEAD_VALIDATION = "lead_validation"
    LEAD_SCORING = "lead_scoring"
    SALES_ASSIGNMENT = "sales_assignment"
    DISCOVERY_SCHEDULED = "discovery_scheduled"
    DISCOVERY_COMPLETED = "discovery_completed"
    DEMO_SCHEDULED = "demo_scheduled"
    DEMO_DELIVERED = "demo_delivered"
    PROPOSAL_DEVELOPMENT = "proposal_development"
    PROPOSAL_SENT = "proposal_sent"
    CONTRACT_NEGOTIATION = "contract_negotiation"
    CONTRACT_SENT = "contract_sent"
    CONTRACT_SIGNED = "contract_signed"
    PAYMENT_CONFIRMED = "payment_confirmed"
    ORDER_PROCESSING = "order_processing"
    PRODUCTION_SCHEDULED = "production_scheduled"
    DEVICE_CONFIGURATION = "device_configuration"
    QUALITY_ASSURANCE = "quality_assurance"
    WAREHOUSE_RECEIPT = "warehouse_receipt"
    DELIVERY_PLANNING = "delivery_planning"
    DELIVERY_SCHEDULED = "delivery_scheduled"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    INSTALLATION_SCHEDULED = "installation_scheduled"
    INSTALLATION_IN_PROGRESS = "installation_in_progress"
    NETWORK_CONFIGURATION = "network_configuration"
    SYSTEM_TESTING = "system_testing"
    CUSTOMER_TRAINING = "customer_training"
    ACCEPTANCE_SIGNED = "acceptance_signed"
    MAINTENANCE_MONITORING = "maintenance_monitoring"
    PREVENTIVE_MAINTENANCE = "preventive_maintenance"
    SERVICE_CALL_MANAGEMENT = "service_call_management"
    SUPPLY_ORDERING = "supply_ordering"
    ACCOUNT_REVIEW = "account_review"


class Role(StrEnum):
    LEAD_PROCESSOR = "lead_processor"
    SALES_MANAGER = "sales_manager"
    SALES_REP = "sales_rep"
    CONTRACTS_ADMIN = "contracts_admin"
    ACCOUNTING = "accounting"
    PRODUCTION_COORDINATOR = "production_coordinator"
    PRODUCTION_MANAGER = "production_manager"
    TECHNICIAN = "technician"
    QA_TECHNICIAN = "qa_technician"
    WAREHOUSE_MANAGER = "warehouse_manager"
    LOGISTICS_COORDINATOR = "logistics_coordinator"
    DELIVERY_DRIVER = "delivery_driver"
    SERVICE_COORDINATOR = "service_coordinator"
    FIELD_TECHNICIAN = "field_technician"
    CUSTOMER_SUCCESS = "customer_success"
    CUSTOMER_SERVICE = "customer_service"
    ACCOUNT_MANAGER = "account_manager"


INITIAL_STAGE = Stage.LEAD_SUBMISSION
COMPLETION_STAGE = Stage.MAINTENANCE_MONITORING
TOTAL_PHASES = 7

PHASES: dict[int, str] = {
    1: "Lead Acquisition & Qualification",
    2: "Sales Process",
    3: "Contract Management",
    4: "Production & Fulfillment",
    5: "Logistics & Delivery",
    6: "Installation & Setup",
    7: "Ongoing Customer Management",
}

# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

STAGE_TABLE: list[dict[str, Any]] = [
    # Phase 1: Lead acquisition & qualification
    {
        "id": "lead_submission",
        "phase": 1,
        "name": "Lead Submission",
        "description": "Initial lead captured from various sources",
        "next_actions": ["lead_validation"],
        "required_fields": ["contact_info", "initial_inquiry"],
        "estimated_duration": "1-2 hours",
        "responsible_role": "lead_processor",
    },
    {
        "id": "lead_validation",
        "phase": 1,
        "name": "Lead Validation & Data Enrichment",
        "description": "Verify lead information and enrich data",
        "next_actions": ["lead_scoring"],
        "required_fields": ["validated_contact", "company_details"],
        "estimated_duration": "2-4 hours",
        "responsible_role": "lead_processor",
    },
    {
        "id": "lead_scoring",
        "phase": 1,
        "name": "Lead Scoring & Qualification",
        "description": "Score lead based on qualification criteria",
        "next_actions": ["sales_assignment"],
        "required_fields": ["qualification_score", "budget_qualification"],
        "estimated_duration": "1 hour",
        "responsible_role": "sales_manager",
    },
    {
        "id": "sales_assignment",
        "phase": 1,
        "name": "Sales Rep Assignment",
        "description": "Assign qualified lead to appropriate sales rep",
        "next_actions": ["discovery_scheduled"],
        "required_fields": ["assigned_sales_rep", "territory_match"],
        "estimated_duration": "30 minutes",
        "responsible_role": "sales_manager",
    },
    # Phase 2: Sales process
    {
        "id": "discovery_scheduled",
        "phase": 2,
        "name": "Discovery Call Scheduled",
        "description": "Initial discovery call scheduled with prospect",
        "next_actions": ["discovery_completed"],
        "required_fields": ["call_datetime", "attendees"],
        "estimated_duration": "24-48 hours",
        "responsible_role": "sales_rep",
    },
    {
        "id": "discovery_completed",
        "phase": 2,
        "name": "Discovery Call Completed",
        "description": "Initial discovery call completed and documented",
        "next_actions": ["demo_scheduled", "proposal_development"],
        "required_fields": ["call_notes", "requirements_captured"],
        "estimated_duration": "1 hour",
        "responsible_role": "sales_rep",
    },
    {
        "id": "demo_scheduled",
        "phase": 2,
        "name": "Demo Scheduled",
        "description": "Product demonstration scheduled",
        "next_actions": ["demo_delivered"],
        "required_fields": ["demo_datetime", "demo_requirements"],
        "estimated_duration": "3-7 days",
        "responsible_role": "sales_rep",
    },
    {
        "id": "demo_delivered",
        "phase": 2,
        "name": "Demo Delivered",
        "description": "Product demonstration completed",
        "next_actions": ["proposal_development"],
        "required_fields": ["demo_feedback", "technical_requirements"],
        "estimated_duration": "1 hour",
        "responsible_role": "sales_rep",
    },
    {
        "id": "proposal_development",
        "phase": 2,
        "name": "Proposal Development",
        "description": "Custom proposal being developed",
        "next_actions": ["proposal_sent"],
        "required_fields": ["pricing_details", "solution_specs"],
        "estimated_duration": "2-5 days",
        "responsible_role": "sales_rep",
    },
    {
        "id": "proposal_sent",
        "phase": 2,
        "name": "Proposal Sent",
        "description": "Proposal sent to prospect for review",
        "next_actions": ["contract_negotiation"],
        "required_fields": ["proposal_sent_date", "follow_up_scheduled"],
        "estimated_duration": "5-14 days",
        "responsible_role": "sales_rep",
    },
    # Phase 3: Contract management
    {
        "id": "contract_negotiation",
        "phase": 3,
        "name": "Contract Negotiation",
        "description": "Contract terms being negotiated",
        "next_actions": ["contract_sent"],
        "required_fields": ["negotiation_notes", "final_terms"],
        "estimated_duration": "3-10 days",
        "responsible_role": "sales_rep",
    },
    {
        "id": "contract_sent",
        "phase": 3,
        "name": "Contract Sent for Signature",
        "description": "Final contract sent for customer signature",
        "next_actions": ["contract_signed"],
        "required_fields": ["contract_sent_date", "signature_method"],
        "estimated_duration": "2-7 days",
        "responsible_role": "contracts_admin",
    },
    {
        "id": "contract_signed",
        "phase": 3,
        "name": "Contract Signed & Closed",
        "description": "Contract fully executed and deal closed",
        "next_actions": ["payment_confirmed"],
        "required_fields": ["signed_contract", "deal_value"],
        "estimated_duration": "1 day",
        "responsible_role": "contracts_admin",
    },
    {
        "id": "payment_confirmed",
        "phase": 3,
        "name": "Payment Terms Confirmed",
        "description": "Payment setup and terms confirmed",
        "next_actions": ["order_processing"],
        "required_fields": ["payment_method", "billing_schedule"],
        "estimated_duration": "1-2 days",
        "responsible_role": "accounting",
    },
    # Phase 4: Production & fulfillment
    {
        "id": "order_processing",
        "phase": 4,
        "name": "Order Processing & Specification Confirmation",
        "description": "Order details processed and specs confirmed",
        "next_actions": ["production_scheduled"],
        "required_fields": ["final_specifications", "build_requirements"],
        "estimated_duration": "1-3 days",
        "responsible_role": "production_coordinator",
    },
    {
        "id": "production_scheduled",
        "phase": 4,
        "name": "Production Scheduled",
        "description": "Device production scheduled in manufacturing queue",
        "next_actions": ["device_configuration"],
        "required_fields": ["production_slot", "estimated_completion"],
        "estimated_duration": "2-5 days",
        "responsible_role": "production_manager",
    },
    {
        "id": "device_configuration",
        "phase": 4,
        "name": "Device Configuration & Testing",
        "description": "Device being built with specified options",
        "next_actions": ["quality_assurance"],
        "required_fields": ["build_progress", "configuration_details"],
        "estimated_duration": "3-10 days",
        "responsible_role": "technician",
    },
    {
        "id": "quality_assurance",
        "phase": 4,
        "name": "Quality Assurance Complete",
        "description": "Device testing and QA completed",
        "next_actions": ["warehouse_receipt"],
        "required_fields": ["qa_checklist", "test_results"],
        "estimated_duration": "1-2 days",
        "responsible_role": "qa_technician",
    },
    {
        "id": "warehouse_receipt",
        "phase": 4,
        "name": "Warehouse Receipt & Inventory",
        "description": "Completed device received in warehouse",
        "next_actions": ["delivery_planning"],
        "required_fields": ["inventory_location", "serial_numbers"],
        "estimated_duration": "1 day",
        "responsible_role": "warehouse_manager",
    },
    # Phase 5: Logistics & delivery
    {
        "id": "delivery_planning",
        "phase": 5,
        "name": "Delivery Route Planning",
        "description": "Delivery logistics being planned",
        "next_actions": ["delivery_scheduled"],
        "required_fields": ["delivery_route", "logistics_requirements"],
        "estimated_duration": "1-3 days",
        "responsible_role": "logistics_coordinator",
    },
    {
        "id": "delivery_scheduled",
        "phase": 5,
        "name": "Delivery Scheduled",
        "description": "Delivery date and time confirmed with customer",
        "next_actions": ["in_transit"],
        "required_fields": ["delivery_datetime", "customer_confirmation"],
        "estimated_duration": "2-7 days",
        "responsible_role": "logistics_coordinator",
    },
    {
        "id": "in_transit",
        "phase": 5,
        "name": "In Transit",
        "description": "Device en route to customer location",
        "next_actions": ["delivered"],
        "required_fields": ["tracking_info", "estimated_arrival"],
        "estimated_duration": "1-2 days",
        "responsible_role": "delivery_driver",
    },
    {
        "id": "delivered",
        "phase": 5,
        "name": "Delivered to Customer Site",
        "description": "Device delivered to customer location",
        "next_actions": ["installation_scheduled"],
        "required_fields": ["delivery_confirmation", "condition_notes"],
        "estimated_duration": "1 day",
        "responsible_role": "delivery_driver",
    },
    # Phase 6: Installation & setup
    {
        "id": "installation_scheduled",
        "phase": 6,
        "name": "Installation Scheduled",
        "description": "On-site installation scheduled with customer",
        "next_actions": ["installation_in_progress"],
        "required_fields": ["install_datetime", "technician_assigned"],
        "estimated_duration": "1-5 days",
        "responsible_role": "service_coordinator",
    },
    {
        "id": "installation_in_progress",
        "phase": 6,
        "name": "On-Site Installation",
        "description": "Technician performing on-site installation",
        "next_actions": ["network_configuration"],
        "required_fields": ["installation_notes", "site_conditions"],
        "estimated_duration": "2-6 hours",
        "responsible_role": "field_technician",
    },
    {
        "id": "network_configuration",
        "phase": 6,
        "name": "Network Configuration",
        "description": "Network and connectivity setup in progress",
        "next_actions": ["system_testing"],
        "required_fields": ["network_settings", "connectivity_verified"],
        "estimated_duration": "1-3 hours",
        "responsible_role": "field_technician",
    },
    {
        "id": "system_testing",
        "phase": 6,
        "name": "System Testing & Validation",
        "description": "Full system testing and validation",
        "next_actions": ["customer_training"],
        "required_fields": ["test_results", "system_validation"],
        "estimated_duration": "1-2 hours",
        "responsible_role": "field_technician",
    },
    {
        "id": "customer_training",
        "phase": 6,
        "name": "Customer Training Delivered",
        "description": "Customer training on device operation",
        "next_actions": ["acceptance_signed"],
        "required_fields": ["training_completed", "customer_questions"],
        "estimated_duration": "1-2 hours",
        "responsible_role": "field_technician",
    },
    {
        "id": "acceptance_signed",
        "phase": 6,
        "name": "Signed Acceptance Delivered",
        "description": "Customer acceptance and satisfaction confirmed",
        "next_actions": ["maintenance_monitoring"],
        "required_fields": ["acceptance_signature", "satisfaction_score"],
        "estimated_duration": "30 minutes",
        "responsible_role": "field_technician",
    },
    # Phase 7: Ongoing customer management
    {
        "id": "maintenance_monitoring",
        "phase": 7,
        "name": "Regular Meter Reading Schedule",
        "description": "Ongoing monitoring and meter reading schedule",
        "next_actions": ["preventive_maintenance", "service_call_management", "supply_ordering", "account_review"],
        "required_fields": ["reading_schedule", "monitoring_setup"],
        "estimated_duration": "Ongoing",
        "responsible_role": "customer_success",
    },
    {
        "id": "preventive_maintenance",
        "phase": 7,
        "name": "Preventive Maintenance Planning",
        "description": "Scheduled maintenance planning and execution",
        "next_actions": ["maintenance_monitoring"],
        "required_fields": ["maintenance_schedule", "service_history"],
        "estimated_duration": "Scheduled",
        "responsible_role": "service_coordinator",
    },
    {
        "id": "service_call_management",
        "phase": 7,
        "name": "Service Call Management",
        "description": "Managing customer service requests and issues",
        "next_actions": ["maintenance_monitoring"],
        "required_fields": ["service_request", "resolution_status"],
        "estimated_duration": "As needed",
        "responsible_role": "customer_service",
    },
    {
        "id": "supply_ordering",
        "phase": 7,
        "name": "Supply Ordering & Fulfillment",
        "description": "Managing ongoing supply needs",
        "next_actions": ["maintenance_monitoring"],
        "required_fields": ["supply_requirements", "order_status"],
        "estimated_duration": "As needed",
        "responsible_role": "customer_success",
    },
    {
        "id": "account_review",
        "phase": 7,
        "name": "Account Review & Upselling",
        "description": "Regular account reviews and growth opportunities",
        "next_actions": ["maintenance_monitoring"],
        "required_fields": ["review_notes", "upsell_opportunities"],
        "estimated_duration": "Quarterly",
        "responsible_role": "account_manager",
    },
]

# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

_SALES_STAGES = [
    "discovery_scheduled",
    "discovery_completed",
    "demo_scheduled",
    "demo_delivered",
    "proposal_development",
    "proposal_sent",
]
_INSTALL_STAGES = [
    "installation_in_progress",
    "network_configuration",
    "system_testing",
    "customer_training",
    "acceptance_signed",
]

ROLE_TABLE: list[dict[str, Any]] = [
    {
        "id": "lead_processor",
        "name": "Lead Processor",
        "department": "Marketing",
        "dashboard": "lead_management",
        "permissions": {
            "can_view": ["lead_submission", "lead_validation", "lead_scoring"],
            "can_edit": ["lead_submission", "lead_validation"],
            "can_advance": ["lead_submission", "lead_validation"],
            "can_assign": False,
        },
    },
    {
        "id": "sales_manager",
        "name": "Sales Manager",
        "department": "Sales",
        "dashboard": "sales_pipeline",
        "permissions": {
            "can_view": ["lead_scoring", "sales_assignment", *_SALES_STAGES],
            "can_edit": ["lead_scoring", "sales_assignment"],
            "can_advance": ["lead_scoring", "sales_assignment"],
            "can_assign": True,
        },
    },
    {
        "id": "sales_rep",
        "name": "Sales Representative",
        "department": "Sales",
        "dashboard": "sales_activities",
        "permissions": {
            "can_view": [*_SALES_STAGES, "contract_negotiation"],
            "can_edit": [*_SALES_STAGES, "contract_negotiation"],
            "can_advance": [*_SALES_STAGES, "contract_negotiation"],
            "can_assign": False,
        },
    },
    {
        "id": "contracts_admin",
        "name": "Contracts Administrator",
        "department": "Legal/Contracts",
        "dashboard": "contract_management",
        "permissions": {
            "can_view": ["contract_negotiation", "contract_sent", "contract_signed"],
            "can_edit": ["contract_sent", "contract_signed"],
            "can_advance": ["contract_sent", "contract_signed"],
            "can_assign": False,
        },
    },
    {
        "id": "accounting",
        "name": "Accounting",
        "department": "Finance",
        "dashboard": "financial_tracking",
        "permissions": {
            "can_view": ["contract_signed", "payment_confirmed"],
            "can_edit": ["payment_confirmed"],
            "can_advance": ["payment_confirmed"],
            "can_assign": False,
        },
    },
    {
        "id": "production_coordinator",
        "name": "Production Coordinator",
        "department": "Manufacturing",
        "dashboard": "production_queue",
        "permissions": {
            "can_view": ["payment_confirmed", "order_processing", "production_scheduled"],
            "can_edit": ["order_processing"],
            "can_advance": ["order_processing"],
            "can_assign": True,
        },
    },
    {
        "id": "production_manager",
        "name": "Production Manager",
        "department": "Manufacturing",
        "dashboard": "production_oversight",
        "permissions": {
            "can_view": [
                "order_processing",
                "production_scheduled",
                "device_configuration",
                "quality_assurance",
                "warehouse_receipt",
            ],
            "can_edit": ["production_scheduled"],
            "can_advance": ["production_scheduled"],
            "can_assign": True,
        },
    },
    {
        "id": "technician",
        "name": "Manufacturing Technician",
        "department": "Manufacturing",
        "dashboard": "build_queue",
        "permissions": {
            "can_view": ["production_scheduled", "device_configuration", "quality_assurance"],
            "can_edit": ["device_configuration"],
            "can_advance": ["device_configuration"],
            "can_assign": False,
        },
    },
    {
        "id": "qa_technician",
        "name": "QA Technician",
        "department": "Quality Assurance",
        "dashboard": "quality_control",
        "permissions": {
            "can_view": ["device_configuration", "quality_assurance"],
            "can_edit": ["quality_assurance"],
            "can_advance": ["quality_assurance"],
            "can_assign": False,
        },
    },
    {
        "id": "warehouse_manager",
        "name": "Warehouse Manager",
        "department": "Logistics",
        "dashboard": "inventory_management",
        "permissions": {
            "can_view": ["quality_assurance", "warehouse_receipt", "delivery_planning"],
            "can_edit": ["warehouse_receipt"],
            "can_advance": ["warehouse_receipt"],
            "can_assign": True,
        },
    },
    {
        "id": "logistics_coordinator",
        "name": "Logistics Coordinator",
        "department": "Logistics",
        "dashboard": "logistics_tracking",
        "permissions": {
            "can_view": ["warehouse_receipt", "delivery_planning", "delivery_scheduled", "in_transit", "delivered"],
            "can_edit": ["delivery_planning", "delivery_scheduled"],
            "can_advance": ["delivery_planning", "delivery_scheduled"],
            "can_assign": True,
        },
    },
    {
        "id": "delivery_driver",
        "name": "Delivery Driver",
        "department": "Logistics",
        "dashboard": "delivery_routes",
        "permissions": {
            "can_view": ["delivery_scheduled", "in_transit", "delivered"],
            "can_edit": ["in_transit", "delivered"],
            "can_advance": ["in_transit", "delivered"],
            "can_assign": False,
        },
    },
    {
        "id": "service_coordinator",
        "name": "Service Coordinator",
        "department": "Field Service",
        "dashboard": "service_scheduling",
        "permissions": {
            "can_view": ["delivered", "installation_scheduled", *_INSTALL_STAGES, "preventive_maintenance"],
            "can_edit": ["installation_scheduled", "preventive_maintenance"],
            "can_advance": ["installation_scheduled", "preventive_maintenance"],
            "can_assign": True,
        },
    },
    {
        "id": "field_technician",
        "name": "Field Service Technician",
        "department": "Field Service",
        "dashboard": "field_assignments",
        "permissions": {
            "can_view": ["installation_scheduled", *_INSTALL_STAGES],
            "can_edit": list(_INSTALL_STAGES),
            "can_advance": list(_INSTALL_STAGES),
            "can_assign": False,
        },
    },
    {
        "id": "customer_success",
        "name": "Customer Success Manager",
        "department": "Customer Success",
        "dashboard": "customer_health",
        "permissions": {
            "can_view": ["acceptance_signed", "maintenance_monitoring", "supply_ordering"],
            "can_edit": ["maintenance_monitoring", "supply_ordering"],
            "can_advance": ["maintenance_monitoring", "supply_ordering"],
            "can_assign": False,
        },
    },
    {
        "id": "customer_service",
        "name": "Customer Service Representative",
        "department": "Customer Service",
        "dashboard": "service_requests",
        "permissions": {
            "can_view": ["maintenance_monitoring", "service_call_management"],
            "can_edit": ["service_call_management"],
            "can_advance": ["service_call_management"],
            "can_assign": False,
        },
    },
    {
        "id": "account_manager",
        "name": "Account Manager",
        "department": "Sales",
        "dashboard": "account_growth",
        "permissions": {
            "can_view": ["maintenance_monitoring", "account_review"],
            "can_edit": ["account_review"],
            "can_advance": ["account_review"],
            "can_assign": False,
        },
    },
]

# Role -> role whose users approve manual handoffs into it.
MANAGER_ROLES: dict[str, str] = {
    "lead_processor": "sales_manager",
    "sales_rep": "sales_manager",
    "technician": "production_manager",
    "qa_technician": "production_manager",
    "delivery_driver": "logistics_coordinator",
    "field_technician": "service_coordinator",
}

# ---------------------------------------------------------------------------
# Handoff rules
# ---------------------------------------------------------------------------

HANDOFF_RULES: list[dict[str, Any]] = [
    {
        "from_stage": "lead_validation",
        "to_stage": "lead_scoring",
        "from_role": "lead_processor",
        "to_role": "sales_manager",
        "required_fields": ["validated_contact", "company_details"],
        "auto_handoff": True,
        "notification_template": "lead_qualified_handoff",
    },
    {
        "from_stage": "sales_assignment",
        "to_stage": "discovery_scheduled",
        "from_role": "sales_manager",
        "to_role": "sales_rep",
        "required_fields": ["assigned_sales_rep", "territory_match"],
        "auto_handoff": True,
        "notification_template": "lead_assigned_handoff",
    },
    {
        "from_stage": "contract_negotiation",
        "to_stage": "contract_sent",
        "from_role": "sales_rep",
        "to_role": "contracts_admin",
        "required_fields": ["negotiation_notes", "final_terms"],
        "auto_handoff": False,
        "notification_template": "contract_ready_handoff",
    },
    {
        "from_stage": "payment_confirmed",
        "to_stage": "order_processing",
        "from_role": "accounting",
        "to_role": "production_coordinator",
        "required_fields": ["payment_method", "billing_schedule"],
        "auto_handoff": True,
        "notification_template": "production_ready_handoff",
    },
    {
        "from_stage": "production_scheduled",
        "to_stage": "device_configuration",
        "from_role": "production_manager",
        "to_role": "technician",
        "required_fields": ["production_slot", "estimated_completion"],
        "auto_handoff": True,
        "notification_template": "build_assignment_handoff",
    },
    {
        "from_stage": "warehouse_receipt",
        "to_stage": "delivery_planning",
        "from_role": "warehouse_manager",
        "to_role": "logistics_coordinator",
        "required_fields": ["inventory_location", "serial_numbers"],
        "auto_handoff": True,
        "notification_template": "ready_for_delivery_handoff",
    },
    {
        "from_stage": "delivered",
        "to_stage": "installation_scheduled",
        "from_role": "delivery_driver",
        "to_role": "service_coordinator",
        "required_fields": ["delivery_confirmation", "condition_notes"],
        "auto_handoff": True,
        "notification_template": "installation_needed_handoff",
    },
    {
        "from_stage": "acceptance_signed",
        "to_stage": "maintenance_monitoring",
        "from_role": "field_technician",
        "to_role": "customer_success",
        "required_fields": ["acceptance_signature", "satisfaction_score"],
        "auto_handoff": True,
        "notification_template": "customer_onboarded_handoff",
    },
]

# ---------------------------------------------------------------------------
# Default tunables (overridable through config.json "workflow" section)
# ---------------------------------------------------------------------------

DEFAULT_MILESTONES: dict[str, str] = {
    "sales_assignment": "Lead Qualified",
    "contract_signed": "Deal Closed",
    "warehouse_receipt": "Production Complete",
    "delivered": "Delivery Complete",
    "acceptance_signed": "Installation Complete",
    "maintenance_monitoring": "Customer Onboarded",
}

# Days until expected completion, counted from entry into the stage.
DEFAULT_STAGE_ESTIMATE_DAYS: dict[str, int] = {
    "lead_submission": 45,
    "discovery_scheduled": 35,
    "contract_signed": 25,
    "production_scheduled": 20,
    "delivery_scheduled": 10,
    "installation_scheduled": 5,
    "maintenance_monitoring": 0,
}
