from html import escape
from fastapi import APIRouter
from fastapi.responses import HTMLResponse
from utils.deps import user_dependency


router = APIRouter(tags=["pages"], include_in_schema=False)


def render_page(title: str, body: str) -> HTMLResponse:
    return HTMLResponse(f"<!doctype html><html><head><title>{title}</title></head><body>{body}</body></html>")


@router.get("/")
async def home():
    return render_page("Task Management", "<h1>Task Management</h1>")


@router.get("/login")
async def login_page():
    return render_page("Sign in", "<h1>Sign in</h1>")


@router.get("/register")
async def register_page():
    return render_page("Create account", "<h1>Create account</h1>")


@router.get("/dashboard")
def dashboard(user: user_dependency):
    return render_page("Dashboard", f"<h1>Dashboard</h1><p>Signed in as {escape(user.email)}</p>")
