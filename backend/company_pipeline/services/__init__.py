# Services package init
"""
Company Pipeline Backend: Services Layer
========================================

What:  Concrete pipeline stages for the company domain.
How:   Behaviors and handlers implement the mediator contracts in
       company_pipeline.mediator.base and never touch HTTP objects.

Service Inventory:
    - RequestLoggingBehavior: entry/exit logging with duration
    - AddKeyBehavior: assigns the generated company key
    - AddHashBehavior: assigns the generated company hash
    - CreateCompanyHandler: builds the CompanyResponse
"""
