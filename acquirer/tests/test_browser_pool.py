"""Tests for the fixed-capacity browser pool."""

import asyncio

import pytest

from acquirer.src.browser import BLOCKED_RESOURCE_TYPES, BrowserPool


class TestBrowserPoolAcquire:
    """Tests for acquire/release."""

    @pytest.mark.asyncio
    async def test_launches_lazily(self, browser_factory):
        pool = BrowserPool(size=3, browser_factory=browser_factory)

        assert pool.open_count == 0
        browser = await pool.acquire()

        assert pool.open_count == 1
        assert pool.in_use == 1
        assert browser.connected is True
        await pool.shutdown()

    @pytest.mark.asyncio
    async def test_reuses_released_browser(self, browser_factory):
        pool = BrowserPool(size=3, browser_factory=browser_factory)

        first = await pool.acquire()
        await pool.release(first)
        second = await pool.acquire()

        assert second is first
        assert len(browser_factory.created) == 1
        await pool.shutdown()

    @pytest.mark.asyncio
    async def test_never_exceeds_capacity(self, browser_factory):
        pool = BrowserPool(size=2, browser_factory=browser_factory)

        await pool.acquire()
        await pool.acquire()

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(pool.acquire(), timeout=0.05)

        assert pool.open_count == 2
        assert len(browser_factory.created) == 2
        await pool.shutdown()

    @pytest.mark.asyncio
    async def test_blocked_acquire_resumes_on_release(self, browser_factory):
        pool = BrowserPool(size=1, browser_factory=browser_factory)
        held = await pool.acquire()

        waiter = asyncio.create_task(pool.acquire())
        await asyncio.sleep(0.01)
        assert not waiter.done()

        await pool.release(held)
        got = await asyncio.wait_for(waiter, timeout=1)

        assert got is held
        await pool.shutdown()

    @pytest.mark.asyncio
    async def test_acquire_timeout(self, browser_factory):
        pool = BrowserPool(size=1, browser_factory=browser_factory, acquire_timeout=0.05)
        await pool.acquire()

        with pytest.raises(asyncio.TimeoutError):
            await pool.acquire()
        await pool.shutdown()


class TestBrowserPoolLease:
    """Tests for the scoped lease."""

    @pytest.mark.asyncio
    async def test_lease_releases_on_exit(self, pool):
        async with pool.lease() as browser:
            assert pool.in_use == 1
            assert browser.connected

        assert pool.in_use == 0
        await pool.shutdown()

    @pytest.mark.asyncio
    async def test_lease_releases_on_error(self, pool):
        with pytest.raises(RuntimeError):
            async with pool.lease():
                raise RuntimeError("navigation failed")

        assert pool.in_use == 0
        async with pool.lease():
            pass
        assert pool.open_count == 1
        await pool.shutdown()


class TestBrowserPoolShutdown:
    """Tests for shutdown."""

    @pytest.mark.asyncio
    async def test_shutdown_disconnects_everything(self, pool, browser_factory):
        browsers = [await pool.acquire() for _ in range(3)]
        for browser in browsers:
            await pool.release(browser)

        assert browser_factory.live == 3
        await pool.shutdown()

        assert browser_factory.live == 0
        assert pool.open_count == 0

    @pytest.mark.asyncio
    async def test_release_after_shutdown_disconnects(self, pool, browser_factory):
        browser = await pool.acquire()
        await pool.shutdown()

        await pool.release(browser)

        assert browser.connected is False
        assert browser_factory.live == 0

    @pytest.mark.asyncio
    async def test_pool_usable_after_shutdown(self, pool, browser_factory):
        async with pool.lease():
            pass
        await pool.shutdown()

        async with pool.lease() as browser:
            assert browser.connected
        assert len(browser_factory.created) == 2
        await pool.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_tolerates_disconnect_errors(self, pool, browser_factory):
        browser = await pool.acquire()
        await pool.release(browser)

        async def _boom():
            raise RuntimeError("already closed")

        browser.disconnect = _boom
        await pool.shutdown()

        assert pool.open_count == 0


def test_blocked_resource_types():
    assert {"image", "stylesheet", "font"} <= BLOCKED_RESOURCE_TYPES
