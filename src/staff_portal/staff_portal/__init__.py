"""Staff Portal package.

Internal management tool for a multi-branch organization: leave requests
with two approval tiers, timesheets, activity and recommendation tracking.
Organized by feature modules (leaves, timesheets, activities, ...) with a
thin Flask controller layer over service/repository layers.
"""
