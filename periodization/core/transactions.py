from functools import wraps
from typing import Awaitable, Callable, ParamSpec, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

P = ParamSpec('P')
T = TypeVar('T')


def transactional():
    """Run the decorated coroutine as one unit of work.

    Opens ``session.begin()`` so the work commits on return and rolls back on
    any exception. When the caller already holds an open transaction the
    caller owns the unit of work: the body runs inside it and is only flushed.
    """
    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            session = _extract_session(args, kwargs)

            if session.in_transaction():
                result = await func(*args, **kwargs)
                await session.flush()
                return result

            async with session.begin():
                return await func(*args, **kwargs)
        return wrapper
    return decorator


def _extract_session(args, kwargs) -> AsyncSession:
    if args and isinstance(args[0], AsyncSession):
        return args[0]
    if 'db' in kwargs:
        return kwargs['db']
    if 'session' in kwargs:
        return kwargs['session']
    if args and hasattr(args[0], '_session') and isinstance(args[0]._session, AsyncSession):
        return args[0]._session
    raise ValueError("No session found in function arguments")
