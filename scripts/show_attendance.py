import asyncio
import sys
import os
import logging
from dotenv import load_dotenv
from sqlalchemy import select

script_dir = os.path.dirname(os.path.abspath(__file__))
if os.path.basename(script_dir) == 'scripts':
    project_root = os.path.dirname(script_dir)
else:
    project_root = script_dir

sys.path.append(project_root)
env_path = os.path.join(project_root, ".env")
if os.path.exists(env_path):
    load_dotenv(env_path)

# Keep SQL echo out of the table output
os.environ["DEBUG"] = "false"
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

from sqlalchemy.exc import SQLAlchemyError

from vcheck.database import AsyncSessionLocal
from vcheck.models.attendance import Attendance


async def show_attendance(limit: int = 200):
    print("\n" + "=" * 118)
    print(
        f" {'ID':<5} | {'Date':<10} | {'In':<8} | {'Out':<8} | {'Officer':<20} | "
        f"{'Office':<20} | {'Dist(m)':>8} | {'Geo':<7} | {'In':<8} | {'Out':<8}"
    )
    print("=" * 118)

    try:
        async with AsyncSessionLocal() as session:
            query = (
                select(Attendance)
                .order_by(Attendance.checkin_date.desc(), Attendance.checkin_time.desc())
                .limit(limit)
            )
            result = await session.execute(query)
            records = result.scalars().all()

            if not records:
                print(f" {'No records found.':<110}")
            for record in records:
                time_in = record.checkin_time.strftime("%H:%M:%S")
                time_out = record.checkout_time.strftime("%H:%M:%S") if record.checkout_time else "--"
                print(
                    f" {record.id:<5} | {str(record.checkin_date):<10} | {time_in:<8} | {time_out:<8} | "
                    f"{record.officer_name[:20]:<20} | {record.office_name[:20]:<20} | "
                    f"{record.distance:>8.2f} | {record.status:<7} | {record.checkin_status:<8} | "
                    f"{record.checkout_status or '--':<8}"
                )

    except SQLAlchemyError as e:
        print(f"\n[!] Error fetching data: {e}")
        print("    Hint: Check DATABASE_URL in your .env file.")

    print("=" * 118 + "\n")


if __name__ == "__main__":
    try:
        asyncio.run(show_attendance())
    except KeyboardInterrupt:
        pass
