import logging

from services.inventory import InventoryService
from services.stock_reservation import StockReservationService

logger = logging.getLogger(__name__)


class BackgroundTaskService:
    @staticmethod
    async def cleanup_expired_reservations() -> int:
        """
        Release stock reservations whose checkout never completed.
        """
        released = await StockReservationService.release_expired()
        if released:
            logger.info(f"Released {released} expired reservation(s)")
        return released

    @staticmethod
    async def report_low_stock() -> int:
        alerts = await InventoryService.get_low_stock_alerts()
        for alert in alerts:
            logger.warning(f"Low stock: {alert.sku} ({alert.variant_name}) has {alert.stock_quantity} left")
        return len(alerts)

    @staticmethod
    async def run_single_cleanup() -> dict:
        """
        Run one cleanup cycle and return results (useful for admin commands).
        Each task is isolated, a failing task is reported and the next one still runs.
        """
        results = {
            'released_reservations': 0,
            'low_stock_variants': 0,
            'errors': []
        }

        try:
            results['released_reservations'] = await BackgroundTaskService.cleanup_expired_reservations()
        except Exception as e:
            logger.error(f"Error releasing expired reservations: {str(e)}", exc_info=True)
            results['errors'].append(f"Reservations: {str(e)}")

        try:
            results['low_stock_variants'] = await BackgroundTaskService.report_low_stock()
        except Exception as e:
            logger.error(f"Error reporting low stock: {str(e)}", exc_info=True)
            results['errors'].append(f"Low stock: {str(e)}")

        return results
