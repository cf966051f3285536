"""
Schemas Module - Result types for the external API and form validation

API payloads are narrowed here before any view touches them. Form schemas
mirror the validation the dashboard applies before a submission is sent.
"""

import json
from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .converter import plain_text


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class SessionIdentity(ApiModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


class Author(ApiModel):
    name: Optional[str] = None


class Blog(ApiModel):
    id: str
    title: str
    slug: str
    excerpt: str = ''
    content: str = ''
    tags: List[str] = Field(default_factory=list)
    cover_image: Optional[str] = Field(default=None, alias='coverImage')
    views: int = 0
    is_featured: bool = Field(default=False, alias='isFeatured')
    author: Optional[Author] = None
    created_at: Optional[datetime] = Field(default=None, alias='createdAt')
    updated_at: Optional[datetime] = Field(default=None, alias='updatedAt')

    @field_validator('id', mode='before')
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator('content', mode='before')
    @classmethod
    def _content_as_string(cls, value):
        if value is None:
            return ''
        if isinstance(value, dict):
            return json.dumps(value)
        return value


class Project(ApiModel):
    id: str
    title: str
    slug: str
    description: str = ''
    thumbnail: Optional[str] = None
    demo_images: List[str] = Field(default_factory=list, alias='demoImages')
    tech_stack: List[str] = Field(default_factory=list, alias='techStack')
    features: List[str] = Field(default_factory=list)
    live_url: Optional[str] = Field(default=None, alias='liveUrl')
    repo_url: Optional[str] = Field(default=None, alias='repoUrl')
    created_at: Optional[datetime] = Field(default=None, alias='createdAt')
    updated_at: Optional[datetime] = Field(default=None, alias='updatedAt')

    @field_validator('id', mode='before')
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value

    @field_validator('description', mode='before')
    @classmethod
    def _description_as_string(cls, value):
        if value is None:
            return ''
        if isinstance(value, dict):
            return json.dumps(value)
        return value


class PageMeta(ApiModel):
    total: int = 0
    page: int = 1
    limit: Optional[int] = None


class BlogPage(ApiModel):
    items: List[Blog] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)


class ProjectPage(ApiModel):
    items: List[Project] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)


class SaveResult(ApiModel):
    id: Optional[str] = None
    slug: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def _coerce_id(cls, value):
        return str(value) if value is not None else value


# Form schemas

def _split_csv(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(',') if part.strip()]
    return [str(part).strip() for part in value if str(part).strip()]


def _is_http_url(value):
    parsed = urlparse(value)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


class BlogForm(BaseModel):
    title: str = Field(min_length=5)
    excerpt: str = Field(min_length=20)
    content: str
    tags: List[str] = Field(default_factory=list)

    @field_validator('title', 'excerpt', mode='before')
    @classmethod
    def _strip(cls, value):
        return (value or '').strip()

    @field_validator('content')
    @classmethod
    def _content_required(cls, value):
        if not plain_text(value).strip():
            raise ValueError('Content is required')
        return value

    @field_validator('tags', mode='before')
    @classmethod
    def _tags(cls, value):
        return _split_csv(value)


class ProjectForm(BaseModel):
    title: str = Field(min_length=3)
    description: str
    live_url: str = ''
    repo_url: str = ''
    tech_stack: List[str] = Field(min_length=1)
    features: List[str] = Field(min_length=1)

    @field_validator('title', 'live_url', 'repo_url', mode='before')
    @classmethod
    def _strip(cls, value):
        return (value or '').strip()

    @field_validator('description')
    @classmethod
    def _description_length(cls, value):
        if len(plain_text(value).strip()) < 50:
            raise ValueError('Description must be at least 50 characters')
        return value

    @field_validator('live_url', 'repo_url')
    @classmethod
    def _optional_url(cls, value):
        if value and not _is_http_url(value):
            raise ValueError('Invalid URL')
        return value

    @field_validator('tech_stack', 'features', mode='before')
    @classmethod
    def _unique_items(cls, value):
        seen = []
        for item in _split_csv(value):
            if item not in seen:
                seen.append(item)
        return seen


FIELD_MESSAGES = {
    ('blog', 'title'): 'Title must be at least 5 characters',
    ('blog', 'excerpt'): 'Excerpt must be at least 20 characters',
    ('project', 'title'): 'Title must be at least 3 characters',
    ('project', 'tech_stack'): 'Add at least one technology',
    ('project', 'features'): 'Add at least one feature',
}


def field_errors(error: ValidationError, form_name) -> dict:
    """Map a pydantic ValidationError to {field: message} for inline display"""
    errors = {}
    for item in error.errors():
        field = str(item['loc'][0]) if item.get('loc') else '__all__'
        if field in errors:
            continue
        message = FIELD_MESSAGES.get((form_name, field))
        if not message:
            message = item.get('msg', 'Invalid value')
            if message.startswith('Value error, '):
                message = message[len('Value error, '):]
        errors[field] = message
    return errors


__all__ = [
    'Author',
    'Blog',
    'BlogForm',
    'BlogPage',
    'PageMeta',
    'Project',
    'ProjectForm',
    'ProjectPage',
    'SaveResult',
    'SessionIdentity',
    'field_errors',
]
