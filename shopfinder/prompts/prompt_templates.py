"""Dynamic text construction for summaries and result listings."""

from shopfinder.schemas.shop_schema import SearchResult, ShopRecord
from shopfinder.schemas.state_schema import ShopDraft


def build_confirmation_summary(draft: ShopDraft, services: list[str]) -> str:
    """Read-back of the whole draft before saving."""
    return "\n".join([
        "Please confirm:",
        "",
        f"Shop Name: {draft.shop_name or ''}",
        f"Address: {draft.address or ''}",
        f"City: {draft.city or ''}",
        f"State: {draft.state or ''}",
        f"Phone: {draft.phone or ''}",
        f"Contact Person: {draft.contact_person or ''}",
        f"Staff Type: {draft.staff_type or ''}",
        f"Services: {', '.join(services)}",
        f"Notes: {draft.notes or ''}",
    ])


def build_result_block(result: SearchResult, rank: int) -> str:
    shop = result.record
    lines = [
        f"{rank}. {result.distance_miles:.1f} mi - {shop.shop_name}",
        f"{shop.address}, {shop.city}, {shop.state}",
        f"Phone: {shop.phone} | Contact: {shop.contact_person}",
        f"Staff: {shop.staff_type} | Services: {shop.services_csv}",
    ]
    if shop.notes:
        lines.append(f"Notes: {shop.notes}")
    return "\n".join(lines)


def build_results_header(query: str, radius_miles: float, start: int, end: int, total: int) -> str:
    """Header with a 1-based inclusive range, e.g. 'showing 11-20 of 34'."""
    return (
        f"Results for {query} (within {radius_miles:g} miles) "
        f"- showing {start + 1}-{end} of {total}"
    )


def build_last_added(records: list[ShopRecord]) -> str:
    lines = []
    for i, shop in enumerate(records, start=1):
        services = f" | Services: {shop.services_csv}" if shop.services else ""
        lines.append(
            f"{i}) {shop.shop_name} - {shop.city}, {shop.state} | Phone: {shop.phone}{services}"
        )
    return "\n".join([f"Last {len(records)} added:", "", *lines])
