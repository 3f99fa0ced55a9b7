"""Web 管理接口 —— 门店数据的 HTTP API

基于 FastAPI 提供门店后台接口，包含：
1. 登录认证（用户名/密码换取 token，24 小时有效）
2. 整表读写（与本地表存储一致的整表覆盖语义）
3. 表格镜像同步（拉取 / 全量推送 / 地址设置）
4. 预约、收银、顾客、线索、考勤、通知等业务操作
5. 报表、CSV 导出与 AI 助手

业务校验失败（BusinessRuleError）统一返回 400。

使用方式：
    ```python
    server = WebServer(db, port=8080)
    await server.startup()
    ```
"""
import asyncio
import secrets
import threading
from dataclasses import asdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from loguru import logger

from business import (
    AppointmentBook, AttendanceLog, BusinessRuleError, CustomerBook,
    LeadPipeline, NotificationCenter, PointOfSale, SalonAssistant,
    build_context, to_csv,
)
from business import reports
from business.export import export_filename
from business.rules import paginate
from database import SalonDatabase
from database.schemas import today_local


class WebServer:
    """门店后台 Web 服务

    路由：
    - POST /api/login                 → 登录认证
    - GET  /api/tables/{name}         → 读取整表（可分页）
    - PUT  /api/tables/{name}         → 整表覆盖保存
    - POST /api/sync/pull             → 从表格镜像拉取
    - POST /api/sync/push             → 全量推送到表格镜像
    - GET/PUT /api/settings/mirror    → 表格镜像地址
    - POST /api/appointments          → 登记预约
    - PUT  /api/appointments/{id}/status
    - POST /api/appointments/bill     → 开单
    - POST /api/sales/checkout        → 收银结算
    - POST /api/customers             → 顾客建档（及充值、套餐、会员、优惠券发放与核销）
    - GET  /api/customers/celebrations → 近期生日/纪念日
    - GET/POST /api/leads             → 线索列表与登记（及状态、评论、转化）
    - POST /api/attendance/punch-in | punch-out
    - POST /api/staff/{id}/reset-device → 解除考勤设备绑定
    - GET  /api/notifications         → 通知列表
    - GET  /api/reports/summary       → 报表
    - GET  /api/reports/staff/{id}    → 员工月度业绩
    - GET  /api/export/{name}         → CSV 导出
    - POST /api/assistant             → AI 助手
    - GET  /health                    → 健康检查
    """

    def __init__(
        self,
        db: SalonDatabase,
        host: str = "0.0.0.0",
        port: int = 8080,
        username: str = "admin",
        password: str = "admin123",
        assistant: Optional[SalonAssistant] = None,
    ):
        self.db = db
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.assistant = assistant or SalonAssistant()
        self.app = None
        self.running = False
        self._server_thread: Optional[threading.Thread] = None
        self._server = None  # uvicorn.Server 实例
        self._server_loop = None
        # 简易 token 存储
        self._valid_tokens: Dict[str, datetime] = {}

    def _generate_token(self) -> str:
        """生成登录 token"""
        token = secrets.token_hex(32)
        self._valid_tokens[token] = datetime.now() + timedelta(hours=24)
        return token

    def _verify_token(self, token: str) -> bool:
        """验证 token"""
        if token not in self._valid_tokens:
            return False
        if datetime.now() > self._valid_tokens[token]:
            del self._valid_tokens[token]
            return False
        return True

    def create_app(self):
        """创建 FastAPI 应用"""
        from fastapi import Depends, FastAPI, HTTPException, Request
        from fastapi.responses import JSONResponse, Response

        app = FastAPI(
            title="Salon Vault",
            description="门店后台 - 数据表、同步与业务操作",
            version="6.0.0",
        )
        db = self.db
        appointments = AppointmentBook(db)
        pos = PointOfSale(db)
        customers = CustomerBook(db)
        leads = LeadPipeline(db)
        attendance = AttendanceLog(db)
        notifications = NotificationCenter(db)

        @app.exception_handler(BusinessRuleError)
        async def business_error_handler(request: Request, exc: BusinessRuleError):
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": str(exc)},
            )

        @app.exception_handler(ValueError)
        async def value_error_handler(request: Request, exc: ValueError):
            """非法枚举值（支付方式、状态等）"""
            return JSONResponse(
                status_code=400,
                content={"success": False, "error": str(exc)},
            )

        def get_current_user(request: Request):
            """从请求头中验证 token"""
            auth = request.headers.get("Authorization", "")
            if auth.startswith("Bearer "):
                token = auth[7:]
                if self._verify_token(token):
                    return True
            raise HTTPException(status_code=401, detail="未授权，请先登录")

        def get_store(name: str):
            store = db.get_table(name)
            if store is None:
                raise HTTPException(status_code=404, detail=f"未知数据表: {name}")
            return store

        # ==================== 认证 API ====================

        @app.post("/api/login")
        async def login(data: dict):
            """登录认证"""
            username = data.get("username", "")
            password = data.get("password", "")
            if username == self.username and password == self.password:
                token = self._generate_token()
                return {"success": True, "token": token}
            return JSONResponse(
                status_code=401,
                content={"success": False, "error": "用户名或密码错误"},
            )

        # ==================== 数据表 API ====================

        @app.get("/api/tables")
        async def table_list(_=Depends(get_current_user)):
            return {
                "data": [
                    {"name": name, "tab": store.tab, "count": store.count()}
                    for name, store in db.tables.items()
                ]
            }

        @app.get("/api/tables/{name}")
        async def table_read(name: str, page: Optional[int] = None,
                             page_size: int = 50, _=Depends(get_current_user)):
            """读取整表；传 page 时本地分页"""
            records = get_store(name).get_all()
            if page is None:
                return {"data": records, "total": len(records)}
            rows, total = paginate(records, page, page_size)
            return {"data": rows, "total": total, "page": page}

        @app.put("/api/tables/{name}")
        async def table_replace(name: str, request: Request,
                                _=Depends(get_current_user)):
            """整表覆盖保存"""
            records = await request.json()
            if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
                return JSONResponse(
                    status_code=400,
                    content={"success": False, "error": "请求体必须是记录数组"},
                )
            get_store(name).save(records)
            return {"success": True, "count": len(records)}

        # ==================== 同步 API ====================

        @app.post("/api/sync/pull")
        async def sync_pull(_=Depends(get_current_user)):
            return asdict(db.sync.pull())

        @app.post("/api/sync/push")
        async def sync_push(_=Depends(get_current_user)):
            return asdict(db.sync.push_all())

        @app.get("/api/settings/mirror")
        async def mirror_settings(_=Depends(get_current_user)):
            return {
                "scriptUrl": db.mirror.get_script_url(),
                "viewUrl": db.mirror.get_view_url(),
                "configured": db.mirror.is_configured(),
            }

        @app.put("/api/settings/mirror")
        async def mirror_settings_update(data: dict, _=Depends(get_current_user)):
            if "scriptUrl" in data:
                db.mirror.set_script_url(data["scriptUrl"] or "")
            if "viewUrl" in data:
                db.mirror.set_view_url(data["viewUrl"] or "")
            return {"success": True, "configured": db.mirror.is_configured()}

        # ==================== 预约 API ====================

        @app.get("/api/appointments")
        async def appointment_list(staff_id: Optional[str] = None,
                                   start: Optional[str] = None,
                                   end: Optional[str] = None,
                                   status: Optional[str] = None,
                                   _=Depends(get_current_user)):
            return {"data": appointments.filter(staff_id, start, end, status)}

        @app.post("/api/appointments")
        async def appointment_book(data: dict, _=Depends(get_current_user)):
            """登记预约；传 itemId 时按目录项定价"""
            if data.get("itemId"):
                appt = appointments.book_from_catalog(
                    data.get("customerId", ""), data.get("staffId", ""),
                    data["itemId"], data.get("kind", "service"),
                    data.get("date", ""), data.get("time", ""),
                    discount_percent=data.get("discountPercent"),
                )
            else:
                appt = appointments.book(
                    data.get("customerId", ""), data.get("staffId", ""),
                    data.get("serviceName", ""), data.get("date", ""),
                    data.get("time", ""),
                    list_price=data.get("price", 0),
                    discount_percent=data.get("discountPercent", 0),
                    duration_min=data.get("durationMin", 60),
                )
            return {"success": True, "data": appt}

        @app.put("/api/appointments/{appointment_id}/status")
        async def appointment_status(appointment_id: str, data: dict,
                                     _=Depends(get_current_user)):
            return {"success": True,
                    "data": appointments.set_status(appointment_id, data.get("status"))}

        @app.post("/api/appointments/bill")
        async def appointment_bill(data: dict, _=Depends(get_current_user)):
            invoice = appointments.bill(
                data.get("appointmentIds") or [],
                data.get("paymentMethod", "Cash"),
            )
            return {"success": True, "data": asdict(invoice)}

        # ==================== 收银 API ====================

        @app.post("/api/sales/checkout")
        async def sales_checkout(data: dict, _=Depends(get_current_user)):
            sale = pos.checkout(
                data.get("items") or [],
                data.get("paymentMethod", "Cash"),
                customer_id=data.get("customerId"),
                staff_id=data.get("staffId"),
            )
            return {"success": True, "data": sale}

        @app.get("/api/sales")
        async def sales_list(start: Optional[str] = None, end: Optional[str] = None,
                             product: Optional[str] = None,
                             _=Depends(get_current_user)):
            return {"data": pos.filter(start, end, product)}

        # ==================== 顾客 API ====================

        @app.post("/api/customers")
        async def customer_register(data: dict, _=Depends(get_current_user)):
            customer = customers.register(
                data.get("name", ""),
                phone=data.get("phone", ""),
                email=data.get("email", ""),
                apartment=data.get("apartment", ""),
                birthday=data.get("birthday", ""),
                anniversary=data.get("anniversary", ""),
                notes=data.get("notes", ""),
            )
            return {"success": True, "data": customer}

        @app.get("/api/customers/search")
        async def customer_search(q: str = "", _=Depends(get_current_user)):
            return {"data": customers.search(q)}

        @app.get("/api/customers/{customer_id}/history")
        async def customer_history(customer_id: str, _=Depends(get_current_user)):
            return {"data": customers.history(customer_id)}

        @app.post("/api/customers/{customer_id}/topup")
        async def customer_topup(customer_id: str, data: dict,
                                 _=Depends(get_current_user)):
            return {"success": True,
                    "data": customers.top_up_wallet(customer_id, data.get("amount", 0))}

        @app.post("/api/customers/{customer_id}/package")
        async def customer_package(customer_id: str, data: dict,
                                   _=Depends(get_current_user)):
            customer = customers.purchase_package(
                customer_id, data.get("packageId", ""),
                data.get("paymentMethod", "Cash"),
            )
            return {"success": True, "data": customer}

        @app.post("/api/customers/{customer_id}/coupons")
        async def customer_coupon(customer_id: str, data: dict,
                                  _=Depends(get_current_user)):
            coupon = customers.assign_coupon(customer_id, data.get("templateId", ""))
            return {"success": True, "data": coupon}

        @app.post("/api/customers/{customer_id}/membership")
        async def customer_membership(customer_id: str, data: dict,
                                      _=Depends(get_current_user)):
            customer = customers.purchase_membership(
                customer_id, data.get("fee", 0),
                data.get("paymentMethod", "Cash"),
            )
            return {"success": True, "data": customer}

        @app.post("/api/customers/{customer_id}/coupons/{coupon_id}/redeem")
        async def customer_coupon_redeem(customer_id: str, coupon_id: str,
                                         _=Depends(get_current_user)):
            return {"success": True,
                    "data": customers.redeem_coupon(customer_id, coupon_id)}

        @app.get("/api/customers/celebrations")
        async def customer_celebrations(days: int = 7, _=Depends(get_current_user)):
            """未来几天内过生日或纪念日的顾客"""
            return {"data": customers.upcoming_celebrations(days=days)}

        # ==================== 线索 API ====================

        @app.post("/api/leads")
        async def lead_create(data: dict, _=Depends(get_current_user)):
            lead = leads.create(
                data.get("name", ""), data.get("phone", ""),
                email=data.get("email", ""), source=data.get("source", ""),
                notes=data.get("notes", ""),
            )
            return {"success": True, "data": lead}

        @app.post("/api/leads/{lead_id}/comments")
        async def lead_comment(lead_id: str, data: dict, _=Depends(get_current_user)):
            comment = leads.add_comment(lead_id, data.get("text", ""),
                                        author=data.get("author", "Admin"))
            return {"success": True, "data": comment}

        @app.post("/api/leads/{lead_id}/convert")
        async def lead_convert(lead_id: str, _=Depends(get_current_user)):
            return {"success": True, "data": leads.convert(lead_id)}

        @app.get("/api/leads")
        async def lead_list(status: Optional[str] = None, _=Depends(get_current_user)):
            return {"data": leads.by_status(status)}

        @app.put("/api/leads/{lead_id}/status")
        async def lead_status(lead_id: str, data: dict, _=Depends(get_current_user)):
            return {"success": True,
                    "data": leads.set_status(lead_id, data.get("status"))}

        # ==================== 考勤 API ====================

        @app.post("/api/attendance/punch-in")
        async def attendance_in(data: dict, _=Depends(get_current_user)):
            record = attendance.punch_in(data.get("staffId", ""),
                                         device_id=data.get("deviceId"))
            return {"success": True, "data": record}

        @app.post("/api/attendance/punch-out")
        async def attendance_out(data: dict, _=Depends(get_current_user)):
            return {"success": True,
                    "data": attendance.punch_out(data.get("staffId", ""))}

        @app.get("/api/attendance/summary")
        async def attendance_summary(month: Optional[str] = None,
                                     _=Depends(get_current_user)):
            return {"data": attendance.monthly_summary(month or today_local()[:7])}

        @app.post("/api/staff/{staff_id}/reset-device")
        async def staff_reset_device(staff_id: str, _=Depends(get_current_user)):
            """解除考勤设备绑定"""
            return {"success": True, "data": attendance.reset_device(staff_id)}

        # ==================== 通知 API ====================

        @app.get("/api/notifications")
        async def notification_list(_=Depends(get_current_user)):
            return {"data": db.list_notifications(),
                    "unread": notifications.unread_count()}

        @app.post("/api/notifications/check")
        async def notification_check(_=Depends(get_current_user)):
            return {"created": len(notifications.run_system_checks())}

        @app.post("/api/notifications/read-all")
        async def notification_read_all(_=Depends(get_current_user)):
            return {"success": True, "count": notifications.mark_all_read()}

        @app.post("/api/notifications/{notification_id}/read")
        async def notification_read(notification_id: str, _=Depends(get_current_user)):
            return {"success": True, "data": notifications.mark_read(notification_id)}

        @app.delete("/api/notifications/{notification_id}")
        async def notification_delete(notification_id: str, _=Depends(get_current_user)):
            return {"success": notifications.delete(notification_id)}

        # ==================== 报表与导出 API ====================

        @app.get("/api/reports/summary")
        async def report_summary(start: Optional[str] = None, end: Optional[str] = None,
                                 _=Depends(get_current_user)):
            end = end or today_local()
            start = start or (date.fromisoformat(end) - timedelta(days=6)).isoformat()
            return {
                "revenue": reports.revenue_by_day(db, start, end),
                "topProducts": reports.top_products(db, start, end),
                "popularServices": reports.popular_services(db, start, end),
                "wallet": reports.wallet_distribution(db),
                "retention": reports.retention(db),
                "lowStock": reports.low_stock(db),
                "stockValue": reports.stock_value_by_category(db),
            }

        @app.get("/api/reports/staff/{staff_id}")
        async def report_staff(staff_id: str, month: Optional[str] = None,
                               _=Depends(get_current_user)):
            return {"data": reports.staff_revenue(db, staff_id, month or today_local()[:7])}

        @app.get("/api/export/{name}")
        async def export_table(name: str, _=Depends(get_current_user)):
            content = to_csv(get_store(name).get_all())
            return Response(
                content=content,
                media_type="text/csv; charset=utf-8",
                headers={
                    "Content-Disposition":
                        f'attachment; filename="{export_filename(name)}"'
                },
            )

        # ==================== AI 助手 API ====================

        @app.post("/api/assistant")
        async def assistant_chat(data: dict, _=Depends(get_current_user)):
            prompt = data.get("prompt", "").strip()
            if not prompt:
                return JSONResponse(
                    status_code=400,
                    content={"success": False, "error": "消息内容不能为空"},
                )
            reply = await asyncio.to_thread(
                self.assistant.generate_text, prompt, build_context(db)
            )
            return {"success": True, "content": reply}

        # ==================== 健康检查 ====================

        @app.get("/health")
        async def health_check():
            return {
                "status": "ok",
                "running": self.running,
                "storage": db.database_url or "memory",
                "mirror_configured": db.mirror.is_configured(),
            }

        return app

    async def startup(self):
        """启动 Web 服务器"""
        import uvicorn

        self.app = self.create_app()
        self.running = True

        def run_server():
            """在独立线程中运行 uvicorn 服务器"""
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._server_loop = loop

            config = uvicorn.Config(
                self.app,
                host=self.host,
                port=self.port,
                log_level="warning",
                loop="asyncio",
            )
            self._server = uvicorn.Server(config)
            # 信号由 app.py 统一处理
            self._server.install_signal_handlers = lambda: None

            try:
                loop.run_until_complete(self._server.serve())
            except Exception as e:
                logger.error(f"服务器运行出错: {e}")
            finally:
                loop.close()

        self._server_thread = threading.Thread(target=run_server, daemon=True)
        self._server_thread.start()

        # 等待服务器启动
        waited = 0.0
        while self._server is None and waited < 5:
            await asyncio.sleep(0.1)
            waited += 0.1

        logger.info(f"Web 管理接口已启动: http://{self.host}:{self.port}")

    async def shutdown(self):
        """停止 Web 服务器"""
        self.running = False

        if self._server is not None:
            logger.info("正在停止 Web 服务器...")
            self._server.should_exit = True
            if self._server_thread and self._server_thread.is_alive():
                self._server_thread.join(timeout=3.0)
            if self._server_thread and self._server_thread.is_alive():
                logger.warning("服务器未在 3 秒内优雅停止，强制退出...")
                self._server.force_exit = True
                self._server_thread.join(timeout=2.0)
            self._server = None
            self._server_loop = None
            self._server_thread = None

        logger.info("Web 管理接口已停止")
