"""Default organisational tree seeded into an empty knowledge store."""

from datetime import datetime
from typing import Optional

from .knowledge import Department, KnowledgeTree, SubDepartment, Workflow

DEFAULT_TREE_VERSION = "v2025-06-14-002"

# (id, name, description, [(sub_id, sub_name, sub_description, [(wf_id, wf_name, wf_description)])])
_DEFAULT_STRUCTURE = [
    ("executive", "Executive", "Executive leadership team", [
        ("executive-general", "General", "Universal rules and policies for all Executive team members", [
            ("executive-general-policies", "Executive General Policies", "Company-wide executive policies and procedures"),
        ]),
        ("ceo", "CEO", "Chief Executive Officer", [
            ("strategic-planning", "Strategic Planning", "Company strategic planning and vision"),
        ]),
        ("president", "President", "Company President", [
            ("operational-oversight", "Operational Oversight", "Overall operational management"),
        ]),
        ("cfo", "CFO", "Chief Financial Officer", [
            ("financial-oversight", "Financial Oversight", "Financial planning and control"),
        ]),
    ]),
    ("management", "Management", "Management team oversight", [
        ("management-general", "General", "Universal policies for all Management team members", [
            ("management-general-policies", "Management General Policies", "Company-wide management policies and procedures"),
        ]),
        ("claims-director", "Claims Director", "Claims management oversight", [
            ("claims-oversight", "Claims Oversight", "Overall claims department management"),
            ("policy-review", "Policy Review Process", "Review and approve policy changes"),
        ]),
        ("hr", "HR (Human Resources)", "Human resources management", [
            ("employee-management", "Employee Management", "Employee lifecycle management"),
            ("recruitment", "Recruitment", "Hiring and onboarding processes"),
        ]),
    ]),
    ("administrative", "Administrative", "Administrative operations", [
        ("administrative-general", "General", "Universal policies for all Administrative team members", [
            ("administrative-general-policies", "Administrative General Policies", "Company-wide administrative policies and procedures"),
        ]),
        ("onboarding", "Onboarding", "Client and staff onboarding processes", [
            ("client-onboarding", "Client Onboarding", "New client setup and documentation"),
            ("staff-onboarding", "Staff Onboarding", "New employee onboarding process"),
        ]),
        ("reception", "Reception", "Front desk and customer service", [
            ("customer-service", "Customer Service", "Front desk customer interaction"),
            ("call-handling", "Call Handling", "Phone and inquiry management"),
        ]),
        ("compliance", "Compliance", "Regulatory and policy compliance", [
            ("regulatory-compliance", "Regulatory Compliance", "State and federal regulation adherence"),
            ("audit-preparation", "Audit Preparation", "Compliance audit readiness"),
        ]),
    ]),
    ("finance", "Finance Department (directed by CFO)", "Financial operations and accounting", [
        ("finance-general", "General", "Universal policies for all Finance team members", [
            ("finance-general-policies", "Finance General Policies", "Company-wide finance policies and procedures"),
        ]),
        ("accounts-receivable", "AR (Accounts Receivable)", "Client billing and payment processing", [
            ("billing-process", "Billing Process", "Client invoicing and payment tracking"),
            ("collections", "Collections", "Outstanding payment collection"),
        ]),
        ("accounts-payable", "AP (Accounts Payable)", "Vendor payments and expense management", [
            ("expense-processing", "Expense Processing", "Process and approve vendor payments"),
            ("budget-management", "Budget Management", "Budget tracking and control"),
        ]),
    ]),
    ("claims", "Claims", "Claims processing and management", [
        ("claims-general", "General", "Universal policies for all Claims team members (e.g., CCS Policy Pro)", [
            ("claims-general-policies", "Claims General Policies", "Company-wide claims policies and tools like CCS Policy Pro"),
        ]),
        ("mmc-adjusters", "MMC (Management Monitored Claims) Public Adjusters", "Management monitored claims processing", [
            ("claim-intake", "Claim Intake", "Initial claim processing and documentation"),
            ("claim-review", "Claim Review", "Management review of claims"),
        ]),
        ("ctg-adjusters", "CTG (Cradle to Grave) Public Adjusters", "Full service claims management", [
            ("full-service-claims", "Full Service Claims", "End-to-end claims management"),
        ]),
        ("can-network", "CAN Network (Coastal Adjuster Network)", "Network of coastal adjusters", [
            ("network-coordination", "Network Coordination", "Adjuster network management"),
        ]),
        ("tls", "TLS (Team Lead Support)", "Team leadership support services", [
            ("team-support", "Team Support", "Support for claims teams"),
        ]),
        ("investigation", "Investigation", "Claims investigation services", [
            ("claim-investigation", "Claim Investigation", "Detailed claim investigation process"),
        ]),
        ("estimating", "Estimating", "Damage estimation and assessment", [
            ("damage-estimation", "Damage Estimation", "Property damage assessment and estimation"),
        ]),
    ]),
    ("commercial-claims", "Commercial Claims Department", "Commercial claims processing", [
        ("commercial-general", "General", "Universal policies for all Commercial Claims team members", [
            ("commercial-general-policies", "Commercial General Policies", "Company-wide commercial claims policies and procedures"),
        ]),
        ("president-commercial", "President of Commercial Claims", "Commercial claims leadership", [
            ("commercial-oversight", "Commercial Oversight", "Commercial claims department management"),
        ]),
        ("coo-commercial", "2 COOs", "Chief Operating Officers for commercial claims", [
            ("operations-management", "Operations Management", "Commercial claims operations"),
        ]),
        ("detailed-adjusters", "Detailed Adjusters", "Specialized commercial adjusters", [
            ("detailed-adjustment", "Detailed Adjustment", "Complex commercial claim adjustment"),
        ]),
    ]),
    ("sales", "Sales", "Sales and business development", [
        ("sales-general", "General", "Universal policies for all Sales team members", [
            ("sales-general-policies", "Sales General Policies", "Company-wide sales policies and procedures"),
        ]),
        ("sales-team", "Sales Team", "Sales representatives and account management", [
            ("lead-generation", "Lead Generation", "New client acquisition"),
            ("account-management", "Account Management", "Existing client relationship management"),
        ]),
    ]),
    ("strategic-growth", "Strategic Growth & Partnerships", "Business growth and partnership development", [
        ("strategic-general", "General", "Universal policies for all Strategic Growth & Partnerships team members", [
            ("strategic-general-policies", "Strategic General Policies", "Company-wide strategic growth and partnership policies"),
        ]),
        ("growth-initiatives", "Growth Initiatives", "Strategic growth initiatives", [
            ("growth-strategy", "Growth Strategy", "Strategic business growth planning"),
        ]),
        ("partnerships", "Partnerships", "Partnership development", [
            ("partnership-development", "Partnership Development", "Strategic partnership initiatives"),
        ]),
    ]),
    ("it", "IT", "Information technology services", [
        ("it-general", "General", "Universal policies for all IT team members", [
            ("it-general-policies", "IT General Policies", "Company-wide IT policies and procedures"),
        ]),
        ("it-support", "IT Support", "Technology support and infrastructure", [
            ("system-administration", "System Administration", "IT infrastructure management"),
            ("user-support", "User Support", "Employee technology assistance"),
        ]),
    ]),
    ("marketing", "Marketing", "Marketing and communications", [
        ("marketing-general", "General", "Universal policies for all Marketing team members", [
            ("marketing-general-policies", "Marketing General Policies", "Company-wide marketing policies and procedures"),
        ]),
        ("marketing-team", "Marketing Team", "Marketing campaigns and communications", [
            ("campaign-management", "Campaign Management", "Marketing campaign development and execution"),
            ("brand-management", "Brand Management", "Brand consistency and messaging"),
        ]),
    ]),
    ("operations", "Operations", "Operational management and support", [
        ("operations-general", "General", "Universal policies for all Operations team members", [
            ("operations-general-policies", "Operations General Policies", "Company-wide operations policies and procedures"),
        ]),
        ("operations-team", "Operations Team", "General operational support", [
            ("process-improvement", "Process Improvement", "Operational efficiency initiatives"),
            ("quality-assurance", "Quality Assurance", "Quality control and assurance"),
        ]),
    ]),
]


def create_default_knowledge_tree(now: Optional[datetime] = None) -> KnowledgeTree:
    """Build the default department structure with empty workflows."""
    now = now or datetime.now()

    departments = []
    for dept_order, (dept_id, dept_name, dept_desc, subs) in enumerate(_DEFAULT_STRUCTURE, start=1):
        sub_departments = []
        for sub_order, (sub_id, sub_name, sub_desc, workflows) in enumerate(subs, start=1):
            sub_departments.append(
                SubDepartment(
                    id=sub_id,
                    name=sub_name,
                    description=sub_desc,
                    order=sub_order,
                    workflows=[
                        Workflow(id=wf_id, name=wf_name, description=wf_desc, order=wf_order)
                        for wf_order, (wf_id, wf_name, wf_desc) in enumerate(workflows, start=1)
                    ],
                )
            )
        departments.append(
            Department(
                id=dept_id,
                name=dept_name,
                description=dept_desc,
                order=dept_order,
                sub_departments=sub_departments,
            )
        )

    return KnowledgeTree(
        departments=departments,
        version=DEFAULT_TREE_VERSION,
        last_modified=now.isoformat(),
    )
