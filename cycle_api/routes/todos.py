from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from ..auth import get_user
from ..db import get_session
from ..models import Todo, User
from ..schemas import TodoCreate, TodoList, TodoOut, TodoStats, TodoUpdate

router = APIRouter(prefix="/api/todos", tags=["Todos"])


@router.get("", response_model=TodoList)
def todo_list(user: User = Depends(get_user), session: Session = Depends(get_session)):
    rows = session.exec(select(Todo).where(Todo.user_id==user.id).order_by(Todo.created_at.desc(), Todo.id.desc())).all()
    done = sum(1 for r in rows if r.is_completed)
    return TodoList(todos=[TodoOut(**r.model_dump()) for r in rows],
                    stats=TodoStats(total=len(rows), completed=done, pending=len(rows) - done))


@router.post("", response_model=TodoOut, status_code=201)
def todo_create(req: TodoCreate, user: User = Depends(get_user), session: Session = Depends(get_session)):
    if not req.title.strip(): raise HTTPException(400, "Title is required")
    it = Todo(user_id=user.id, **req.model_dump(exclude={"title"}), title=req.title.strip())
    session.add(it); session.commit(); session.refresh(it)
    return TodoOut(**it.model_dump())


@router.patch("/{todo_id}", response_model=TodoOut)
def todo_update(todo_id: int, patch: TodoUpdate, user: User = Depends(get_user), session: Session = Depends(get_session)):
    it = session.get(Todo, todo_id)
    if not it or it.user_id != user.id: raise HTTPException(404, "Todo not found")
    fields = patch.model_dump(exclude_unset=True)
    if "title" in fields:
        if not (fields["title"] or "").strip(): raise HTTPException(400, "Title is required")
        fields["title"] = fields["title"].strip()
    for f, v in fields.items():
        if f in ("is_completed", "priority") and v is None:
            continue
        setattr(it, f, v)
    it.updated_at = datetime.utcnow()
    session.add(it); session.commit(); session.refresh(it)
    return TodoOut(**it.model_dump())


@router.delete("/{todo_id}")
def todo_delete(todo_id: int, user: User = Depends(get_user), session: Session = Depends(get_session)):
    it = session.get(Todo, todo_id)
    if not it or it.user_id != user.id: raise HTTPException(404, "Todo not found")
    session.delete(it); session.commit()
    return {"success": True}
