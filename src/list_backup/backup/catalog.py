"""Catalog of the deployed TSS SharePoint lists.

Reference data first, then core entities, then junction lists linking an
entity to a basin region.  Lookup fields are stored by SharePoint as
``<column>LookupId`` and hold the integer item id of the target record.

Usage:
    from list_backup.backup.catalog import DEFAULT_CATALOG

    for coll in DEFAULT_CATALOG.ordered_collections():
        print(coll.name, [fk.field for fk in coll.foreign_keys])
"""

from list_backup.backup.models import CollectionCatalog, CollectionDef, ForeignKey


def _fk(field: str, target: str) -> ForeignKey:
    return ForeignKey(field=f"tss_{field}LookupId", target=target)


DEFAULT_CATALOG = CollectionCatalog(
    collections=[
        # Reference data
        CollectionDef(name="TSS_Country"),
        CollectionDef(name="TSS_Product"),
        CollectionDef(name="TSS_InternalTeam"),
        CollectionDef(name="TSS_Sequence"),
        CollectionDef(
            name="TSS_BasinRegion",
            foreign_keys=[_fk("countryId", "TSS_Country")],
        ),
        # Core entities
        CollectionDef(
            name="TSS_Company",
            foreign_keys=[
                _fk("countryId", "TSS_Country"),
                _fk("parentCompanyId", "TSS_Company"),
            ],
        ),
        CollectionDef(
            name="TSS_Contact",
            foreign_keys=[_fk("companyId", "TSS_Company")],
        ),
        CollectionDef(
            name="TSS_Opportunity",
            foreign_keys=[
                _fk("companyId", "TSS_Company"),
                _fk("primaryContactId", "TSS_Contact"),
                _fk("relatedOpportunityId", "TSS_Opportunity"),
            ],
        ),
        CollectionDef(
            name="TSS_Activity",
            foreign_keys=[
                _fk("companyId", "TSS_Company"),
                _fk("contactId", "TSS_Contact"),
                _fk("opportunityId", "TSS_Opportunity"),
            ],
        ),
        # Junctions
        CollectionDef(
            name="TSS_BasinRegionCountry",
            foreign_keys=[
                _fk("basinRegionId", "TSS_BasinRegion"),
                _fk("countryId", "TSS_Country"),
            ],
        ),
        CollectionDef(
            name="TSS_CompanyBasin",
            foreign_keys=[
                _fk("companyId", "TSS_Company"),
                _fk("basinRegionId", "TSS_BasinRegion"),
            ],
        ),
        CollectionDef(
            name="TSS_ContactBasin",
            foreign_keys=[
                _fk("contactId", "TSS_Contact"),
                _fk("basinRegionId", "TSS_BasinRegion"),
            ],
        ),
        CollectionDef(
            name="TSS_OpportunityBasin",
            foreign_keys=[
                _fk("opportunityId", "TSS_Opportunity"),
                _fk("basinRegionId", "TSS_BasinRegion"),
            ],
        ),
    ]
)
