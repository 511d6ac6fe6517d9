# fastapi web app for rulebook summaries
from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware
import logging
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from .auth import (
    SIGNUP_SENT_MESSAGE, FirebaseIdentityProvider, IdentityProvider, SessionContext,
    auth_error_message, check_password,
)
from .config import get_settings
from .duplicates import DuplicateDetector, LinkCheck, PendingUploads
from .errors import (
    AuthError, EmailNotVerifiedError, InputValidationError, PermissionDeniedError,
    RulesheetError, SummaryNotFoundError, UploadLockedError,
)
from .models import DuplicateResponse, SearchResponse, SummaryRecord, SummaryUpdate, UploadedPDF
from .processing_service import SummaryService, can_edit
from .renderer import render_markdown
from .search import SearchSession
from .utils import format_date, time_ago

settings = get_settings()

# configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Something went wrong while generating the summary. Please try again."

# initialize fastapi application
app = FastAPI(
    title="Rulesheet",
    description="Turn board game rulebook PDFs into concise rules summaries",
    version="1.0.0"
)

# add cors middleware to allow cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret, same_site="lax")

templates_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))
templates.env.filters["time_ago"] = time_ago
templates.env.filters["format_date"] = format_date

# global instances, created on first use
summary_service = None
identity_provider = None


def get_summary_service() -> SummaryService:
    """Get or create the global summary service"""
    global summary_service
    if summary_service is None:
        summary_service = SummaryService(settings=settings)
    return summary_service


def get_identity_provider() -> IdentityProvider:
    global identity_provider
    if identity_provider is None:
        identity_provider = FirebaseIdentityProvider(settings.firebase_api_key)
    return identity_provider


def get_context(request: Request) -> SessionContext:
    """Session context for the current request"""
    return SessionContext.from_session(request.session)


def wants_json(request: Request) -> bool:
    return request.url.path.startswith("/api/")


def render(request: Request, template: str, context: SessionContext, status_code: int = 200, **values):
    return templates.TemplateResponse(
        request,
        template,
        {"ctx": context, "upload_gated": bool(settings.upload_password_hash), **values},
        status_code=status_code,
    )


# map application errors to status codes and pages
@app.exception_handler(RulesheetError)
async def rulesheet_error_handler(request: Request, exc: RulesheetError):
    if isinstance(exc, SummaryNotFoundError):
        status_code, message = 404, "Summary not found."
    elif isinstance(exc, InputValidationError):
        status_code, message = 400, str(exc)
    elif isinstance(exc, (PermissionDeniedError, UploadLockedError)):
        status_code, message = 403, str(exc)
    else:
        logger.error(f"Error handling {request.url.path}: {str(exc)}", exc_info=exc)
        status_code, message = 500, GENERIC_FAILURE_MESSAGE

    if wants_json(request):
        return JSONResponse(status_code=status_code, content={"detail": message})
    template = "not_found.html" if status_code == 404 else "error.html"
    return render(request, template, get_context(request), status_code=status_code, message=message)


# ============================================================================
# PAGES
# ============================================================================

@app.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    q: str = "",
    context: SessionContext = Depends(get_context),
    service: SummaryService = Depends(get_summary_service),
):
    """List all summaries, newest first"""
    summaries = service.list_summaries(search=q)
    total = len(service.list_summaries()) if q.strip() else len(summaries)
    return render(request, "index.html", context, summaries=summaries, search=q, total=total)


def ensure_upload_allowed(context: SessionContext):
    if not context.signed_in:
        raise PermissionDeniedError("Sign in to upload a rulebook and create a summary.")
    if settings.upload_password_hash and not context.upload_unlocked:
        raise UploadLockedError("Enter the upload password to create summaries.")


@app.get("/upload", response_class=HTMLResponse)
async def upload_page(request: Request, context: SessionContext = Depends(get_context)):
    """Upload form, or the sign-in prompt"""
    return render(request, "upload.html", context, max_upload_mb=settings.max_upload_mb)


@app.post("/upload")
async def upload_rulebooks(
    rulebook: List[UploadFile] = File(default=[]),
    bgg_link: str = Form(""),
    context: SessionContext = Depends(get_context),
    service: SummaryService = Depends(get_summary_service),
):
    """Create a summary from one or more rulebook PDFs"""
    ensure_upload_allowed(context)

    files = []
    for upload in rulebook:
        # browsers send an empty part when no file was picked
        if not upload.filename:
            continue
        # type and declared size are checked before the body is read
        service.check_file(upload)
        content = await upload.read()
        files.append(UploadedPDF(filename=upload.filename, content=content, content_type=upload.content_type))
        logger.info(f"File uploaded: {upload.filename} ({len(content)} bytes)")

    summary_id = await run_in_threadpool(service.create_summary, files, bgg_link, context.user)
    return RedirectResponse(url=f"/summary/{summary_id}", status_code=303)


def search_summary(
    record: SummaryRecord,
    term: str,
    match: int,
    is_open: bool = True,
    key: str = "",
    shift: bool = False,
) -> SearchSession:
    """Search state for one request: open, mark ``term``, select ``match``, then apply ``key``"""
    session = SearchSession(render_markdown(record.markdown))
    if is_open:
        session.open()
    session.update(term)
    session.select(match)
    if key:
        session.handle_key(key, shift)
    return session


@app.get("/summary/{summary_id}", response_class=HTMLResponse)
async def summary_page(
    request: Request,
    summary_id: str,
    q: str = "",
    match: int = 0,
    search_open: bool = Query(False, alias="open"),
    context: SessionContext = Depends(get_context),
    service: SummaryService = Depends(get_summary_service),
):
    """Rendered summary, with search markers when q is given"""
    record = service.get_summary(summary_id)
    session = search_summary(record, q, match, search_open or bool(q.strip()))
    navigator = session.navigator
    return render(
        request,
        "summary.html",
        context,
        summary=record,
        html=session.rendered(),
        search=navigator.term,
        search_open=navigator.is_open,
        match_count=navigator.match_count,
        current_match=navigator.current_index,
        next_match=navigator.next_index(),
        previous_match=navigator.previous_index(),
        label=navigator.position_label(),
        can_edit=can_edit(record, context.user),
    )


@app.get("/summary/{summary_id}/raw")
async def summary_raw(summary_id: str, service: SummaryService = Depends(get_summary_service)):
    """Download the stored markdown"""
    record = service.get_summary(summary_id)
    filename = service.download_filename(record)
    return Response(
        content=record.markdown,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )


@app.get("/summary/{summary_id}/edit", response_class=HTMLResponse)
async def edit_page(
    request: Request,
    summary_id: str,
    context: SessionContext = Depends(get_context),
    service: SummaryService = Depends(get_summary_service),
):
    record = service.get_summary(summary_id)
    if not can_edit(record, context.user):
        raise PermissionDeniedError("You can only edit summaries you created.")
    return render(request, "edit.html", context, summary=record)


@app.post("/summary/{summary_id}/edit")
async def edit_summary(
    summary_id: str,
    markdown: str = Form(...),
    game_title: str = Form(""),
    bgg_link: str = Form(""),
    context: SessionContext = Depends(get_context),
    service: SummaryService = Depends(get_summary_service),
):
    changes = SummaryUpdate(markdown=markdown, game_title=game_title, bgg_link=bgg_link)
    await run_in_threadpool(service.update_summary, summary_id, context.user, changes)
    return RedirectResponse(url=f"/summary/{summary_id}", status_code=303)


@app.post("/summary/{summary_id}/delete")
async def delete_summary(
    summary_id: str,
    context: SessionContext = Depends(get_context),
    service: SummaryService = Depends(get_summary_service),
):
    await run_in_threadpool(service.delete_summary, summary_id, context.user)
    return RedirectResponse(url="/", status_code=303)


# ============================================================================
# AUTH AND SESSION
# ============================================================================

@app.get("/login", response_class=HTMLResponse)
async def login_page(request: Request, mode: str = "login", context: SessionContext = Depends(get_context)):
    return render(request, "login.html", context, mode=mode, error="", info="")


@app.post("/login")
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    context: SessionContext = Depends(get_context),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    try:
        identity = await run_in_threadpool(provider.sign_in, email, password)
    except EmailNotVerifiedError as e:
        return render(request, "login.html", context, mode="login", error="", info=str(e))
    except AuthError as e:
        return render(request, "login.html", context, status_code=400, mode="login",
                      error=auth_error_message(e.code, "login"), info="")

    context.user = identity
    context.save(request.session)
    logger.info(f"Signed in {identity.email}")
    return RedirectResponse(url="/", status_code=303)


@app.post("/signup")
async def signup(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    context: SessionContext = Depends(get_context),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    try:
        await run_in_threadpool(provider.sign_up, email, password)
    except AuthError as e:
        return render(request, "login.html", context, status_code=400, mode="signup",
                      error=auth_error_message(e.code, "signup"), info="")
    return render(request, "login.html", context, mode="login", error="", info=SIGNUP_SENT_MESSAGE)


@app.post("/login/google")
async def login_google(
    request: Request,
    id_token: str = Form(...),
    context: SessionContext = Depends(get_context),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    try:
        identity = await run_in_threadpool(provider.sign_in_with_idp, id_token)
    except AuthError as e:
        return render(request, "login.html", context, status_code=400, mode="login",
                      error=auth_error_message(e.code, "login"), info="")
    context.user = identity
    context.save(request.session)
    return RedirectResponse(url="/", status_code=303)


@app.post("/logout")
async def logout(request: Request, context: SessionContext = Depends(get_context)):
    context.user = None
    context.upload_unlocked = False
    context.save(request.session)
    return RedirectResponse(url="/", status_code=303)


@app.post("/unlock")
async def unlock_upload(request: Request, password: str = Form(...), context: SessionContext = Depends(get_context)):
    """Unlock uploads for this session with the shared password"""
    if not check_password(password, settings.upload_password_hash):
        raise UploadLockedError("Incorrect upload password.")
    context.upload_unlocked = True
    context.save(request.session)
    return RedirectResponse(url="/upload", status_code=303)


@app.post("/theme")
async def toggle_theme(request: Request, context: SessionContext = Depends(get_context)):
    context.dark_mode = not context.dark_mode
    context.save(request.session)
    return RedirectResponse(url=request.headers.get("referer") or "/", status_code=303)


# ============================================================================
# JSON API
# ============================================================================

@app.get("/api/summaries", response_model=List[SummaryRecord])
async def api_list_summaries(q: str = "", service: SummaryService = Depends(get_summary_service)):
    return service.list_summaries(search=q)


@app.get("/api/summaries/{summary_id}", response_model=SummaryRecord)
async def api_get_summary(summary_id: str, service: SummaryService = Depends(get_summary_service)):
    return service.get_summary(summary_id)


@app.get("/api/summaries/{summary_id}/search", response_model=SearchResponse)
async def api_search_summary(
    summary_id: str,
    q: str = "",
    match: int = 0,
    key: str = "",
    shift: bool = False,
    service: SummaryService = Depends(get_summary_service),
):
    """
    Highlighted HTML for the live search box.

    ``key`` is the key pressed in the box (Enter or Escape). It is applied
    after ``match`` is selected, so the page only sends its current state.
    """
    record = service.get_summary(summary_id)
    session = search_summary(record, q, match, key=key, shift=shift)
    navigator = session.navigator
    return SearchResponse(
        term=navigator.term,
        html=session.rendered(),
        match_count=navigator.match_count,
        current_index=navigator.current_index,
        label=navigator.position_label(),
        is_open=navigator.is_open,
    )


@app.get("/api/duplicates", response_model=DuplicateResponse)
async def api_duplicates(
    filename: List[str] = Query(default=[]),
    bgg_link: Optional[str] = None,
    service: SummaryService = Depends(get_summary_service),
):
    """Existing summaries for the selected filenames or a BGG link"""
    detector = DuplicateDetector(service.store)
    names = [name for name in filename if name]
    if names:
        pending = PendingUploads(detector)
        for name in names:
            pending.add(name)
        warnings = pending.warnings()
        matches = {}
        for warning in warnings:
            for record in warning.summaries:
                matches.setdefault(record.id, record)
        return DuplicateResponse(query=", ".join(names), matches=list(matches.values()), warnings=warnings)
    if bgg_link is not None:
        link_check = LinkCheck(detector)
        return DuplicateResponse(query=bgg_link.strip(), matches=link_check.check(bgg_link))
    raise HTTPException(status_code=400, detail="Pass filename or bgg_link")


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "rulesheet"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
