from app.constants.activity_codes import ActivityCode


ACTIVITY_TEMPLATES = {
    # ---------------- AUTH ----------------
    ActivityCode.LOGIN:
        "{actor_role} ({actor_email}) logged in",

    ActivityCode.LOGOUT:
        "{actor_role} ({actor_email}) logged out",

    # ---------------- QUOTATIONS ----------------
    ActivityCode.CREATE_QUOTATION:
        "{actor_role} ({actor_email}) created quotation {target_name}",

    ActivityCode.UPDATE_QUOTATION:
        "{actor_role} ({actor_email}) updated quotation {target_name}: {changes}",

    ActivityCode.APPROVE_QUOTATION:
        "{actor_role} ({actor_email}) approved quotation {target_name}",

    ActivityCode.REJECT_QUOTATION:
        "{actor_role} ({actor_email}) rejected quotation {target_name}",

    ActivityCode.REQUEST_REVISE_QUOTATION:
        "{actor_role} ({actor_email}) requested a revision of quotation {target_name}",

    ActivityCode.REVISE_QUOTATION:
        "{actor_role} ({actor_email}) revised quotation {target_name} into {new_number}",

    ActivityCode.CANCEL_QUOTATION:
        "{actor_role} ({actor_email}) cancelled quotation {target_name}",

    ActivityCode.DELETE_QUOTATION:
        "{actor_role} ({actor_email}) deleted quotation {target_name}",

    ActivityCode.CLIENT_DECISION:
        "{actor_role} ({actor_email}) set client status of quotation {target_name} to {new_status}",

    ActivityCode.SUBMIT_PURCHASE_ORDER:
        "{actor_role} ({actor_email}) submitted PO {po_no} for quotation {target_name}",

    ActivityCode.RENDER_QUOTATION_PDF:
        "{actor_role} ({actor_email}) generated the PDF of quotation {target_name}",

    # ---------------- QUOTATION REQUESTS ----------------
    ActivityCode.CREATE_QUOTATION_REQUEST:
        "{actor_role} ({actor_email}) requested a quotation ({target_name}) for {company}",

    ActivityCode.REJECT_QUOTATION_REQUEST:
        "{actor_role} ({actor_email}) rejected quotation request {target_name}",

    # ---------------- ACCESS CONTROL ----------------
    ActivityCode.UPDATE_FEATURES:
        "{actor_role} ({actor_email}) replaced the {axis} feature matrix ({count} features)",

    ActivityCode.CREATE_ROLE:
        "{actor_role} ({actor_email}) created {axis} role {target_name}",

    ActivityCode.DELETE_ROLE:
        "{actor_role} ({actor_email}) deleted {axis} role {target_name}",
}
