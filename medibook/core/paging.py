from pydantic import BaseModel, Field

class PageParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

def page_meta(total: int, params: PageParams) -> dict:
    total_pages = -(-total // params.limit) if total else 0
    return {
        "total": total,
        "page": params.page,
        "limit": params.limit,
        "total_pages": total_pages,
        "has_next_page": params.page < total_pages,
        "has_previous_page": params.page > 1,
    }
